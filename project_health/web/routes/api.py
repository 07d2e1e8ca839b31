from __future__ import annotations

import io
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from project_health.application import api as app_api
from project_health.domain.models import (
    DIMENSIONS,
    NO_SCORE,
    Assessment,
    AssessmentDetail,
    PortfolioFilter,
    Project,
    ProjectSummary,
    sub_key,
)
from project_health.domain.schemas import FilterInput, validate_input
from project_health.domain.scoring import classify, overall_score
from project_health.domain.selection import latest_assessment
from project_health.domain.services import current_week
from project_health.infrastructure.config import get_settings
from project_health.infrastructure.exceptions import (
    DuplicatePeriodWarning,
    MultipleValidationError,
    ProjectHealthError,
)
from project_health.utils.trend_chart import trend_figure_dict
from project_health.web.dependencies import get_db_session
from project_health.web.schemas import (
    AssessmentCreateRequest,
    AssessmentDetailResponse,
    AssessmentResponse,
    DashboardResponse,
    DimensionDetailResponse,
    DimensionResponse,
    FilterOptionsResponse,
    HistoryItemResponse,
    ImportRequest,
    ImportResponse,
    PortfolioStatsResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectRowResponse,
    ProjectUpdateRequest,
    RecordResponse,
    SubCriterionDetailResponse,
    SubCriterionInfo,
    TrendResponse,
    TrendSeriesResponse,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def _http_error(exc: ProjectHealthError | DuplicatePeriodWarning) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.user_message)


def _score(value: Any) -> float | None:
    if value is None or value == NO_SCORE:
        return None
    return float(value)


def _parse_filter(
    year: Optional[str] = Query(default=None),
    delivery: Optional[str] = Query(default=None),
    leader: Optional[str] = Query(default=None),
    tech_lead: Optional[str] = Query(default=None),
    view: str = Query(default="active"),
) -> PortfolioFilter:
    result = validate_input(
        FilterInput,
        {"year": year, "delivery": delivery, "leader": leader, "tech_lead": tech_lead, "view": view},
    )
    if not result.success or result.data is None:
        detail = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return FilterInput(**result.data).to_filter()


def _project_to_schema(project: Project) -> ProjectResponse:
    latest = latest_assessment(project.ratings)
    return ProjectResponse(
        id=project.id,
        name=project.name,
        client=project.client,
        leader=project.leader,
        delivery=project.delivery,
        tech_lead=project.tech_lead,
        status=project.status.value,
        assessment_count=len(project.ratings),
        latest_week=latest.week if latest is not None else None,
    )


def _assessment_to_schema(assessment: Assessment) -> AssessmentResponse:
    overall = overall_score(assessment.dimensions.values())
    return AssessmentResponse(
        week=assessment.week,
        dimensions={key.value: float(score) for key, score in assessment.dimensions.items()},
        overall=_score(overall),
        status=None if overall == NO_SCORE else classify(overall).value,
        subscores=assessment.subscores.to_flat() if assessment.subscores is not None else None,
        justifications=dict(assessment.justifications),
    )


def _row_to_schema(row: ProjectSummary) -> ProjectRowResponse:
    return ProjectRowResponse(
        project=_project_to_schema(row.project),
        week=row.assessment.week if row.assessment is not None else None,
        overall=_score(row.overall),
        overall_status=row.overall_status.value if row.overall_status else None,
        dimensions={key.value: float(score) for key, score in row.dimensions.items()},
        dimension_statuses={key.value: light.value for key, light in row.dimension_statuses.items()},
    )


def _detail_to_schema(detail: AssessmentDetail) -> AssessmentDetailResponse:
    return AssessmentDetailResponse(
        week=detail.week,
        overall=_score(detail.overall),
        overall_status=detail.overall_status.value if detail.overall_status else None,
        dimensions=[
            DimensionDetailResponse(
                key=dimension.key.value,
                label=dimension.label,
                score=float(dimension.score),
                status=dimension.status.value,
                sub_criteria=[
                    SubCriterionDetailResponse(
                        key=sub.key,
                        label=sub.label,
                        score=sub.score,
                        status=sub.status.value if sub.status else None,
                        justification=sub.justification,
                    )
                    for sub in dimension.sub_criteria
                ],
            )
            for dimension in detail.dimensions
        ],
    )


def _require_feature(enabled: bool, name: str) -> None:
    if not enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{name} is disabled")


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/dimensions", response_model=list[DimensionResponse])
def list_dimensions() -> list[DimensionResponse]:
    return [
        DimensionResponse(
            key=key.value,
            label=info.label,
            sub_criteria=[
                SubCriterionInfo(key=sub_key(key, index), label=label)
                for index, label in enumerate(info.sub_criteria)
            ],
        )
        for key, info in DIMENSIONS.items()
    ]


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(
    criteria: PortfolioFilter = Depends(_parse_filter),
    db: Session = Depends(get_db_session),
) -> list[ProjectResponse]:
    return [_project_to_schema(p) for p in app_api.list_projects(db, criteria)]


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreateRequest,
    db: Session = Depends(get_db_session),
) -> ProjectResponse:
    try:
        project = app_api.create_project(db, **payload.model_dump())
        db.commit()
    except ProjectHealthError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _project_to_schema(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str, db: Session = Depends(get_db_session)) -> ProjectResponse:
    try:
        project = app_api.get_project(db, project_id)
    except ProjectHealthError as exc:
        raise _http_error(exc) from exc
    return _project_to_schema(project)


@router.put("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    db: Session = Depends(get_db_session),
) -> ProjectResponse:
    try:
        project = app_api.update_project(db, project_id, **payload.model_dump(exclude_unset=True))
        db.commit()
    except ProjectHealthError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _project_to_schema(project)


@router.post("/projects/{project_id}/archive", response_model=ProjectResponse)
def archive_project(project_id: str, db: Session = Depends(get_db_session)) -> ProjectResponse:
    try:
        project = app_api.archive_project(db, project_id)
        db.commit()
    except ProjectHealthError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _project_to_schema(project)


@router.get("/projects/{project_id}/assessments", response_model=list[HistoryItemResponse])
def list_assessments(
    project_id: str, db: Session = Depends(get_db_session)
) -> list[HistoryItemResponse]:
    try:
        history = app_api.get_project_history(db, project_id)
    except ProjectHealthError as exc:
        raise _http_error(exc) from exc
    return [
        HistoryItemResponse(
            week=item.week,
            overall=_score(item.overall),
            status=item.status.value if item.status else None,
        )
        for item in history
    ]


@router.post(
    "/projects/{project_id}/assessments",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_assessment(
    project_id: str,
    payload: AssessmentCreateRequest,
    db: Session = Depends(get_db_session),
) -> RecordResponse:
    try:
        result = app_api.submit_assessment(
            db,
            project_id,
            payload.week or current_week(),
            payload.scores,
            payload.justifications,
            overwrite=payload.overwrite,
        )
        db.commit()
    except ProjectHealthError as exc:
        db.rollback()
        raise _http_error(exc) from exc

    if result.warning is not None:
        raise _http_error(result.warning)

    return RecordResponse(
        applied=result.applied,
        replaced=result.replaced,
        assessment=_assessment_to_schema(result.assessment),
    )


@router.get(
    "/projects/{project_id}/assessments/{week}", response_model=AssessmentDetailResponse
)
def get_assessment(
    project_id: str, week: str, db: Session = Depends(get_db_session)
) -> AssessmentDetailResponse:
    try:
        detail = app_api.get_assessment_detail(db, project_id, week)
    except ProjectHealthError as exc:
        raise _http_error(exc) from exc
    return _detail_to_schema(detail)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    criteria: PortfolioFilter = Depends(_parse_filter),
    db: Session = Depends(get_db_session),
) -> DashboardResponse:
    summary = app_api.get_dashboard(db, criteria)
    return DashboardResponse(
        stats=PortfolioStatsResponse(
            total=summary.stats.total,
            average_health=_score(summary.stats.average_health),
            average_status=summary.average_status.value if summary.average_status else None,
            at_risk_count=summary.stats.at_risk_count,
        ),
        rows=[_row_to_schema(row) for row in summary.rows],
    )


@router.get("/dashboard/trend", response_model=TrendResponse)
def get_trend(
    criteria: PortfolioFilter = Depends(_parse_filter),
    window: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> TrendResponse:
    trend = app_api.get_trend(db, criteria, window)
    return TrendResponse(
        periods=trend.periods,
        series=[
            TrendSeriesResponse(
                label=series.label,
                points=[_score(point) for point in series.points],
                color=series.color_hint,
                is_aggregate=series.is_aggregate,
            )
            for series in trend.series
        ],
    )


@router.get("/dashboard/trend/figure")
def get_trend_figure(
    criteria: PortfolioFilter = Depends(_parse_filter),
    window: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db_session),
) -> JSONResponse:
    trend = app_api.get_trend(db, criteria, window)
    return JSONResponse(content=trend_figure_dict(trend))


@router.get("/filters", response_model=FilterOptionsResponse)
def get_filters(db: Session = Depends(get_db_session)) -> FilterOptionsResponse:
    options = app_api.get_filter_options(db)
    return FilterOptionsResponse(
        years=options.years,
        deliveries=options.deliveries,
        leaders=options.leaders,
        tech_leads=options.tech_leads,
    )


@router.get("/export/json")
def export_json(db: Session = Depends(get_db_session)) -> JSONResponse:
    _require_feature(get_settings().app.enable_data_export, "Data export")
    payload = json.loads(app_api.export_projects_json(db))
    return JSONResponse(content=payload)


@router.get("/export/xlsx")
def export_xlsx(db: Session = Depends(get_db_session)) -> StreamingResponse:
    _require_feature(get_settings().app.enable_data_export, "Data export")
    stream = io.BytesIO(app_api.export_projects_xlsx(db))
    stream.seek(0)
    headers = {"Content-Disposition": "attachment; filename=project_health.xlsx"}
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.post("/import", response_model=ImportResponse)
def import_projects(
    payload: ImportRequest,
    db: Session = Depends(get_db_session),
) -> ImportResponse:
    _require_feature(get_settings().app.enable_data_import, "Data import")
    try:
        processed = app_api.import_projects(db, payload.projects, replace_all=payload.replace_all)
        db.commit()
    except MultipleValidationError as exc:
        db.rollback()
        return ImportResponse(
            status="error",
            message="Import failed due to validation errors.",
            details=json.dumps(exc.details, default=str),
        )
    except ProjectHealthError as exc:
        db.rollback()
        logger.warning("Import rejected: %s", exc)
        return ImportResponse(
            status="error",
            message=exc.user_message,
            details=json.dumps(exc.details, default=str),
        )

    return ImportResponse(status="ok", message=f"Imported {processed} projects.", processed=processed)
