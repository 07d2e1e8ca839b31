from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from .repositories import ProjectRepo


class UnitOfWork:
    """One transaction over the project store: commit on success, roll back on error."""

    def __init__(self, SessionLocal: sessionmaker[Session]):
        self.SessionLocal = SessionLocal

    @contextmanager
    def begin(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    @contextmanager
    def projects(self) -> Iterator[ProjectRepo]:
        with self.begin() as s:
            yield ProjectRepo(s)
