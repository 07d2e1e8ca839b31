from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SubCriterionInfo(BaseModel):
    key: str
    label: str


class DimensionResponse(BaseModel):
    key: str
    label: str
    sub_criteria: list[SubCriterionInfo]


class ProjectCreateRequest(BaseModel):
    name: str
    client: str
    leader: str
    delivery: Optional[str] = None
    tech_lead: Optional[str] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = None
    client: Optional[str] = None
    leader: Optional[str] = None
    delivery: Optional[str] = None
    tech_lead: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    client: str
    leader: str
    delivery: Optional[str] = None
    tech_lead: Optional[str] = None
    status: Literal["active", "closed"]
    assessment_count: int = 0
    latest_week: Optional[str] = None


class AssessmentCreateRequest(BaseModel):
    week: Optional[str] = Field(
        default=None, description="ISO week such as 2024-W07; defaults to the current week"
    )
    scores: dict[str, int]
    justifications: dict[str, str] = Field(default_factory=dict)
    overwrite: bool = False


class AssessmentResponse(BaseModel):
    week: str
    dimensions: dict[str, float]
    overall: Optional[float] = None
    status: Optional[str] = None
    subscores: Optional[dict[str, int]] = None
    justifications: dict[str, str] = Field(default_factory=dict)


class RecordResponse(BaseModel):
    applied: bool
    replaced: bool = False
    warning: Optional[str] = None
    assessment: AssessmentResponse


class HistoryItemResponse(BaseModel):
    week: str
    overall: Optional[float] = None
    status: Optional[str] = None


class SubCriterionDetailResponse(BaseModel):
    key: str
    label: str
    score: Optional[int] = None
    status: Optional[str] = None
    justification: str = ""


class DimensionDetailResponse(BaseModel):
    key: str
    label: str
    score: float
    status: str
    sub_criteria: list[SubCriterionDetailResponse]


class AssessmentDetailResponse(BaseModel):
    week: str
    overall: Optional[float] = None
    overall_status: Optional[str] = None
    dimensions: list[DimensionDetailResponse]


class PortfolioStatsResponse(BaseModel):
    total: int
    average_health: Optional[float] = None
    average_status: Optional[str] = None
    at_risk_count: int


class ProjectRowResponse(BaseModel):
    project: ProjectResponse
    week: Optional[str] = None
    overall: Optional[float] = None
    overall_status: Optional[str] = None
    dimensions: dict[str, float] = Field(default_factory=dict)
    dimension_statuses: dict[str, str] = Field(default_factory=dict)


class DashboardResponse(BaseModel):
    stats: PortfolioStatsResponse
    rows: list[ProjectRowResponse]


class TrendSeriesResponse(BaseModel):
    label: str
    points: list[Optional[float]]
    color: Optional[str] = None
    is_aggregate: bool = False


class TrendResponse(BaseModel):
    periods: list[str]
    series: list[TrendSeriesResponse]


class FilterOptionsResponse(BaseModel):
    years: list[str]
    deliveries: list[str]
    leaders: list[str]
    tech_leads: list[str]


class ImportRequest(BaseModel):
    projects: list[dict[str, Any]]
    replace_all: bool = False


class ImportResponse(BaseModel):
    status: Literal["ok", "error"]
    message: str
    processed: int = 0
    details: Optional[str] = None
