"""
Project store backed by SQLAlchemy.

The repository is the storage collaborator of the scoring engine: it hands
out frozen ``Project`` snapshots and writes whole snapshots back. Rows are
never exposed to callers.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..domain.models import Project
from ..domain.records import assessment_to_record, project_from_record
from .exceptions import ProjectNotFoundError, handle_database_error
from .logging import get_logger, log_database_operation as log_op
from .models import AssessmentORM, ProjectORM
from .repositories_base import BaseRepository

logger = get_logger(__name__)


def to_domain(row: ProjectORM) -> Project:
    """Snapshot of a stored project with legacy defaults resolved."""
    return project_from_record(
        {
            "id": row.id,
            "name": row.name,
            "client": row.client,
            "leader": row.leader,
            "delivery": row.delivery,
            "techLead": row.tech_lead,
            "status": row.status,
            "ratings": [
                {
                    "week": a.week,
                    "dimensions": a.dimensions,
                    "subdimensions": a.subdimensions,
                    "justifications": a.justifications,
                }
                for a in sorted(row.assessments, key=lambda a: a.position)
            ],
        }
    )


class ProjectRepo(BaseRepository[ProjectORM]):
    model = ProjectORM

    def __init__(self, session: Session):
        super().__init__(session)

    # -------- Read --------

    @log_op("project.load_all")
    def load_all(self) -> list[Project]:
        rows = self.list_rows(
            order_by=[ProjectORM.position, ProjectORM.created_at],
            options=[selectinload(ProjectORM.assessments)],
        )
        return [to_domain(row) for row in rows]

    @log_op("project.find_by_id")
    def find_by_id(self, project_id: str) -> Project | None:
        row = self.get_row(project_id)
        return to_domain(row) if row is not None else None

    def get_by_id_required(self, project_id: str) -> Project:
        project = self.find_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    # -------- Write --------

    @log_op("project.save")
    def save(self, project: Project, position: int | None = None) -> Project:
        """Insert or replace one project together with its assessments."""
        try:
            row = self.get_row(project.id)
            if row is None:
                row = ProjectORM(id=project.id, position=self._next_position())
                self.s.add(row)
            if position is not None:
                row.position = position
            self._apply(row, project)
            self.s.flush()
        except SQLAlchemyError as e:
            logger.exception("Failed to save project %s", project.id)
            raise handle_database_error(e, "save project") from e
        return project

    @log_op("project.save_all")
    def save_all(self, projects: Iterable[Project]) -> None:
        """Replace the whole collection; projects missing from ``projects`` are removed."""
        projects = list(projects)
        keep = {p.id for p in projects}
        try:
            for row in self.list_rows():
                if row.id not in keep:
                    self.s.delete(row)
            self.s.flush()
            for position, project in enumerate(projects):
                self.save(project, position=position)
        except SQLAlchemyError as e:
            logger.exception("Failed to replace the project collection")
            raise handle_database_error(e, "save all projects") from e

    @log_op("project.delete")
    def delete(self, project_id: str) -> None:
        row = self.get_row(project_id)
        if row is None:
            raise ProjectNotFoundError(project_id)
        self.delete_row(row)

    def _next_position(self) -> int:
        current = self.s.query(func.max(ProjectORM.position)).scalar()
        return 0 if current is None else int(current) + 1

    def _apply(self, row: ProjectORM, project: Project) -> None:
        row.name = project.name
        row.client = project.client
        row.leader = project.leader
        row.delivery = project.delivery
        row.tech_lead = project.tech_lead
        row.status = project.status.value

        # Sync by week so the (project, week) unique constraint never trips
        # on a replacement.
        existing = {a.week: a for a in row.assessments}
        wanted = {r.week for r in project.ratings}
        for week, stale in existing.items():
            if week not in wanted:
                row.assessments.remove(stale)

        for position, rating in enumerate(project.ratings):
            record = assessment_to_record(rating)
            target = existing.get(rating.week)
            if target is None:
                target = AssessmentORM(week=rating.week)
                row.assessments.append(target)
            target.position = position
            target.dimensions = record["dimensions"]
            target.subdimensions = record["subdimensions"] or None
            target.justifications = record["justifications"] or None
