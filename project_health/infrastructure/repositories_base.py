# project_health/infrastructure/repositories_base.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session


class BaseRepository[T]:
    """
    Lightweight generic repository with common CRUD + query helpers.
    - Works on ORM rows; entity repositories translate to domain snapshots.
    - Entity repos can override methods and add decorators (logging, metrics) as needed.
    """

    model: type[T]  # must be set by subclasses

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session

    # ---------- Read ----------
    def get_row(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    def list_rows(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        options: Iterable[Any] | None = None,
    ) -> builtins.list[T]:
        q = self.s.query(self.model)
        if options:
            q = q.options(*options)
        for f in filters:
            q = q.filter(f)
        if order_by:
            for ob in order_by:
                q = q.order_by(ob)
        return list(q.all())

    # ---------- Write ----------
    def delete_row(self, obj: T) -> None:
        self.s.delete(obj)
        self.s.flush()
