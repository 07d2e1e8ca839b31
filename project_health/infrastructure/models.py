from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class ProjectORM(Base):
    __tablename__ = "projects"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    leader: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    delivery: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    tech_lead: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    # Legacy rows may carry NULL here; the repository reads that as "active".
    status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    assessments: Mapped[list[AssessmentORM]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="AssessmentORM.position",
    )


class AssessmentORM(Base):
    __tablename__ = "assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    week: Mapped[str] = mapped_column(String(16), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dimensions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    subdimensions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    justifications: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=_utcnow, nullable=False
    )

    __table_args__ = (UniqueConstraint("project_id", "week", name="uq_assessment_project_week"),)

    project: Mapped[ProjectORM] = relationship(back_populates="assessments")
