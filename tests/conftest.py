from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import Callable, Iterable  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from project_health.domain.models import (  # noqa: E402
    Assessment,
    DimensionKey,
    DimensionScores,
    Project,
    ProjectStatus,
    all_sub_keys,
)
from project_health.infrastructure.models import Base  # noqa: E402


@pytest.fixture
def make_assessment() -> Callable[..., Assessment]:
    """Assessment with explicit dimension scores and no sub-scores."""

    def _make(week: str, *scores: float | str) -> Assessment:
        values = list(scores) or [4]
        if len(values) == 1:
            values = values * len(DimensionKey)
        dimensions = DimensionScores.from_mapping(
            {key.value: Decimal(str(v)) for key, v in zip(DimensionKey, values)}
        )
        return Assessment(week=week, dimensions=dimensions)

    return _make


@pytest.fixture
def make_project() -> Callable[..., Project]:
    def _make(
        project_id: str,
        ratings: Iterable[Assessment] = (),
        status: ProjectStatus = ProjectStatus.ACTIVE,
        **fields: str | None,
    ) -> Project:
        fields.setdefault("name", f"Project {project_id}")
        return Project(id=project_id, status=status, ratings=tuple(ratings), **fields)

    return _make


@pytest.fixture
def flat_scores() -> Callable[..., dict[str, int]]:
    """All twenty sub-criteria at ``value``, with per-key overrides."""

    def _make(value: int = 4, **overrides: int) -> dict[str, int]:
        scores = {key: value for key in all_sub_keys()}
        scores.update(overrides)
        return scores

    return _make


@pytest.fixture
def db_session():
    """Create an in-memory SQLite session for testing."""
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()
