"""
Application API layer with error handling and validation.

This module wires the storage collaborator to the scoring engine: every
function loads project snapshots through ``ProjectRepo``, hands them to the
pure domain functions and, for writes, stores the returned snapshot. Callers
own the transaction (commit or rollback).
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from ..domain import services
from ..domain.filters import filter_options, filter_projects
from ..domain.models import (
    DIMENSIONS,
    NO_SCORE,
    AssessmentDetail,
    FilterOptions,
    HistoryItem,
    PortfolioFilter,
    PortfolioSummary,
    Project,
    TrendSeries,
)
from ..domain.schemas import (
    AssessmentInput,
    ProjectInput,
    ValidationResponse,
    validate_input,
)
from ..domain.stats import project_history, summarize_portfolio
from ..domain.trends import build_trend
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    ExportError,
    IntegrityError,
    MultipleValidationError,
    ProjectHealthError,
    ValidationError,
    create_user_friendly_error_message,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.repositories import ProjectRepo
from ..utils.exports import make_json_export_payload, make_xlsx_export_bytes, projects_from_payload

logger = get_logger(__name__)


def _raise_for_validation(result: ValidationResponse, what: str) -> dict[str, Any]:
    if result.success and result.data is not None:
        return result.data

    errors = [ValidationError(e.field, e.message, e.value) for e in result.errors]
    error_msg = "; ".join(f"{e.field}: {e.message}" for e in errors)
    logger.warning(f"{what} validation failed: {error_msg}")
    if len(errors) == 1:
        raise errors[0]
    raise MultipleValidationError(errors)


def _wrap_unexpected(e: Exception, message: str, context: dict[str, Any]) -> Exception:
    error_details = log_error_details(e, context)
    logger.error(message, extra=error_details)
    if isinstance(e, ProjectHealthError):
        return e
    return ProjectHealthError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=create_user_friendly_error_message(e),
    )


@log_operation("create_project")
def create_project(
    session: Session,
    name: str,
    client: str,
    leader: str,
    delivery: str | None = None,
    tech_lead: str | None = None,
    project_id: str | None = None,
) -> Project:
    """
    Create a new active project with no assessments.

    Raises:
        ValidationError: If input data is invalid
        IntegrityError: If ``project_id`` is already taken

    Example:
        >>> project = create_project(session, "Billing revamp", "ACME", "Dana")
        >>> project.status.value
        'active'
    """
    data = _raise_for_validation(
        validate_input(
            ProjectInput,
            {
                "name": name,
                "client": client,
                "leader": leader,
                "delivery": delivery,
                "tech_lead": tech_lead,
            },
        ),
        "Project",
    )

    project = Project(id=project_id or uuid.uuid4().hex, **data)
    repo = ProjectRepo(session)
    if project_id is not None and repo.find_by_id(project_id) is not None:
        raise IntegrityError(
            f"Project with ID {project_id} already exists",
            constraint="unique",
            details={"project_id": project_id},
        )
    try:
        set_context(project_id=project.id)
        repo.save(project)
        logger.info(f"Created project '{project.name}' with ID {project.id}")
        return project
    except Exception as e:
        raise _wrap_unexpected(
            e, f"Failed to create project '{name}'", {"project_name": name}
        ) from e


@log_operation("update_project")
def update_project(session: Session, project_id: str, **fields: Any) -> Project:
    """Edit a project's descriptive fields; assessments and status are untouched."""
    repo = ProjectRepo(session)
    project = repo.get_by_id_required(project_id)

    current = {
        "name": project.name,
        "client": project.client,
        "leader": project.leader,
        "delivery": project.delivery,
        "tech_lead": project.tech_lead,
    }
    unknown = sorted(set(fields) - set(current))
    if unknown:
        raise ValidationError("fields", f"Unknown project fields: {', '.join(unknown)}")

    data = _raise_for_validation(
        validate_input(ProjectInput, {**current, **fields}), "Project"
    )
    updated = replace(project, **data)
    repo.save(updated)
    logger.info(f"Updated project {project_id}")
    return updated


@log_operation("archive_project")
def archive_project(session: Session, project_id: str) -> Project:
    repo = ProjectRepo(session)
    archived = services.archive_project(repo.get_by_id_required(project_id))
    repo.save(archived)
    logger.info(f"Project {project_id} moved to the closed view")
    return archived


def get_project(session: Session, project_id: str) -> Project:
    """
    Raises:
        ProjectNotFoundError: If the identifier does not resolve to a project
    """
    return ProjectRepo(session).get_by_id_required(project_id)


def list_projects(session: Session, criteria: PortfolioFilter | None = None) -> list[Project]:
    return filter_projects(ProjectRepo(session).load_all(), criteria)


@log_operation("submit_assessment")
def submit_assessment(
    session: Session,
    project_id: str,
    week: str,
    scores: Mapping[str, int],
    justifications: Mapping[str, str] | None = None,
    *,
    overwrite: bool = False,
) -> services.RecordResult:
    """
    Record a weekly assessment and persist it when applied.

    When the week already has an assessment and ``overwrite`` is False the
    returned result carries a ``DuplicatePeriodWarning`` and nothing is stored;
    the caller asks for confirmation and resubmits with ``overwrite=True``.

    Raises:
        ValidationError: If the week or scores are invalid
        ProjectNotFoundError: If the project does not exist
    """
    data = _raise_for_validation(
        validate_input(
            AssessmentInput,
            {"week": week, "scores": dict(scores), "justifications": dict(justifications or {})},
        ),
        "Assessment",
    )

    set_context(project_id=project_id, week=data["week"])
    repo = ProjectRepo(session)
    project = repo.get_by_id_required(project_id)

    result = services.record_assessment(
        project, data["week"], data["scores"], data["justifications"], overwrite=overwrite
    )
    if result.warning is not None:
        logger.info(f"Assessment for {data['week']} not stored: {result.warning.message}")
        return result

    repo.save(result.project)
    action = "Replaced" if result.replaced else "Recorded"
    logger.info(f"{action} assessment {data['week']} for project {project_id}")
    return result


def _scoring_defaults(window: int | None) -> tuple[int, float]:
    scoring = get_settings().scoring
    return (window if window is not None else scoring.trend_window), scoring.at_risk_threshold


@log_operation("get_dashboard")
def get_dashboard(session: Session, criteria: PortfolioFilter | None = None) -> PortfolioSummary:
    _, threshold = _scoring_defaults(None)
    projects = ProjectRepo(session).load_all()
    return summarize_portfolio(projects, criteria, at_risk_threshold=threshold)


@log_operation("get_trend")
def get_trend(
    session: Session, criteria: PortfolioFilter | None = None, window: int | None = None
) -> TrendSeries:
    """Trend over the filtered projects, scoped to the filter's year when set."""
    criteria = criteria or PortfolioFilter()
    window, _ = _scoring_defaults(window)
    projects = filter_projects(ProjectRepo(session).load_all(), criteria)
    return build_trend(projects, criteria.year, window)


def get_filter_options(session: Session) -> FilterOptions:
    return filter_options(ProjectRepo(session).load_all())


def get_project_history(session: Session, project_id: str) -> list[HistoryItem]:
    return project_history(get_project(session, project_id))


def get_assessment_detail(session: Session, project_id: str, week: str) -> AssessmentDetail:
    """
    Raises:
        ProjectNotFoundError, AssessmentNotFoundError
    """
    return services.assessment_detail(get_project(session, project_id), week)


def dashboard_table(session: Session, criteria: PortfolioFilter | None = None) -> pd.DataFrame:
    """
    Dashboard rows as a DataFrame: one row per filtered project with its
    relevant dimension scores and overall score (``"-"`` when unrated).
    """
    summary = get_dashboard(session, criteria)
    columns = ["ProjectID", "Project", "Client", *[k.value for k in DIMENSIONS], "Overall", "Status"]
    rows = []
    for row in summary.rows:
        record: dict[str, Any] = {
            "ProjectID": row.project.id,
            "Project": row.project.name,
            "Client": row.project.client,
        }
        for key in DIMENSIONS:
            score = row.dimensions.get(key)
            record[key.value] = float(score) if score is not None else NO_SCORE
        record["Overall"] = NO_SCORE if row.overall == NO_SCORE else float(row.overall)
        record["Status"] = row.overall_status.value if row.overall_status else None
        rows.append(record)
    df = pd.DataFrame(rows, columns=columns)
    logger.info(f"Built dashboard table with {len(df)} rows")
    return df


@log_operation("export_projects_json")
def export_projects_json(session: Session) -> str:
    return make_json_export_payload(ProjectRepo(session).load_all())


@log_operation("export_projects_xlsx")
def export_projects_xlsx(session: Session) -> bytes:
    """
    Raises:
        ExportError: If the workbook cannot be written
    """
    projects = ProjectRepo(session).load_all()
    try:
        return make_xlsx_export_bytes(projects)
    except (OSError, ValueError) as e:
        logger.error(f"Excel export failed: {str(e)}", extra=log_error_details(e))
        raise ExportError(f"Excel export failed: {str(e)}", export_format="xlsx") from e


@log_operation("import_projects")
def import_projects(
    session: Session, payload: str | bytes | list[dict[str, Any]], *, replace_all: bool = False
) -> int:
    """
    Load projects from a JSON export.

    With ``replace_all`` the stored collection becomes exactly the payload;
    otherwise imported projects are upserted by id and others are kept.
    """
    projects = projects_from_payload(payload)
    repo = ProjectRepo(session)
    try:
        if replace_all:
            repo.save_all(projects)
        else:
            for project in projects:
                repo.save(project)
    except Exception as e:
        raise _wrap_unexpected(
            e, "Failed to import projects", {"count": len(projects), "replace_all": replace_all}
        ) from e
    logger.info(f"Imported {len(projects)} projects (replace_all={replace_all})")
    return len(projects)
