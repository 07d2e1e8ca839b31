from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Literal


class DimensionKey(str, Enum):
    DELIVERY = "EN"
    TEAM = "EQ"
    STAKEHOLDERS = "SH"
    VALUE = "VA"
    RISK = "RI"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class TrafficLight(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


SUB_CRITERIA_COUNT = 4

# Sentinel rendered wherever a score cannot be computed (no assessment yet).
NO_SCORE: Literal["-"] = "-"


@dataclass(frozen=True, slots=True)
class DimensionInfo:
    key: DimensionKey
    label: str
    sub_criteria: tuple[str, str, str, str]


DIMENSIONS: dict[DimensionKey, DimensionInfo] = {
    DimensionKey.DELIVERY: DimensionInfo(
        DimensionKey.DELIVERY,
        "Delivery",
        (
            "Schedule compliance",
            "Velocity and predictability",
            "Quality of deliverables",
            "Clarity of backlog and definition of done",
        ),
    ),
    DimensionKey.TEAM: DimensionInfo(
        DimensionKey.TEAM,
        "Team",
        ("Capacity and balance", "Motivation and morale", "Workload", "Psychological safety"),
    ),
    DimensionKey.STAKEHOLDERS: DimensionInfo(
        DimensionKey.STAKEHOLDERS,
        "Stakeholders",
        ("Satisfaction", "Scope alignment", "Communication", "Trust"),
    ),
    DimensionKey.VALUE: DimensionInfo(
        DimensionKey.VALUE,
        "Value",
        (
            "Success metrics",
            "Evidence of value",
            "Early adoption",
            "Link to the business case",
        ),
    ),
    DimensionKey.RISK: DimensionInfo(
        DimensionKey.RISK,
        "Risk",
        (
            "Technical and functional risks",
            "External dependencies",
            "Resources",
            "Technical debt",
        ),
    ),
}


def sub_key(key: DimensionKey, index: int) -> str:
    """Flat key of a sub-criterion, e.g. ``EN_0``."""
    return f"{key.value}_{index}"


def all_sub_keys() -> list[str]:
    return [sub_key(key, i) for key in DimensionKey for i in range(SUB_CRITERIA_COUNT)]


_FIELD_BY_KEY = {
    DimensionKey.DELIVERY: "delivery",
    DimensionKey.TEAM: "team",
    DimensionKey.STAKEHOLDERS: "stakeholders",
    DimensionKey.VALUE: "value",
    DimensionKey.RISK: "risk",
}


@dataclass(frozen=True, slots=True)
class SubScores:
    """Four 1..5 ratings per dimension, one field per dimension."""

    delivery: tuple[int, ...]
    team: tuple[int, ...]
    stakeholders: tuple[int, ...]
    value: tuple[int, ...]
    risk: tuple[int, ...]

    def __post_init__(self) -> None:
        for key in DimensionKey:
            count = len(self[key])
            if count != SUB_CRITERIA_COUNT:
                raise ValueError(
                    f"{key.value} needs exactly {SUB_CRITERIA_COUNT} sub-scores, got {count}"
                )

    def __getitem__(self, key: DimensionKey) -> tuple[int, ...]:
        return getattr(self, _FIELD_BY_KEY[DimensionKey(key)])

    def items(self) -> Iterator[tuple[DimensionKey, tuple[int, ...]]]:
        for key in DimensionKey:
            yield key, self[key]

    @classmethod
    def from_mapping(cls, scores: Mapping[Any, Any]) -> SubScores:
        """
        Build from either ``{"EN": [3, 4, 5, 4], ...}`` or the flat
        ``{"EN_0": 3, "EN_1": 4, ...}`` form.
        """
        values: dict[str, tuple[int, ...]] = {}
        for key in DimensionKey:
            grouped = scores.get(key.value)
            if grouped is not None:
                values[_FIELD_BY_KEY[key]] = tuple(int(v) for v in grouped)
                continue
            flat = [scores.get(sub_key(key, i)) for i in range(SUB_CRITERIA_COUNT)]
            missing = [sub_key(key, i) for i, v in enumerate(flat) if v is None]
            if missing:
                raise KeyError(f"Missing sub-scores: {', '.join(missing)}")
            values[_FIELD_BY_KEY[key]] = tuple(int(v) for v in flat)
        return cls(**values)

    def to_flat(self) -> dict[str, int]:
        return {
            sub_key(key, i): score for key, scores in self.items() for i, score in enumerate(scores)
        }


@dataclass(frozen=True, slots=True)
class DimensionScores:
    """One-decimal average per dimension."""

    delivery: Decimal
    team: Decimal
    stakeholders: Decimal
    value: Decimal
    risk: Decimal

    def __getitem__(self, key: DimensionKey) -> Decimal:
        return getattr(self, _FIELD_BY_KEY[DimensionKey(key)])

    def items(self) -> Iterator[tuple[DimensionKey, Decimal]]:
        for key in DimensionKey:
            yield key, self[key]

    def values(self) -> list[Decimal]:
        return [self[key] for key in DimensionKey]

    @classmethod
    def from_mapping(cls, dimensions: Mapping[Any, Any]) -> DimensionScores:
        """Accepts ``{"EN": "4.0", ...}``; string values come from legacy records."""
        values: dict[str, Decimal] = {}
        for key in DimensionKey:
            raw = dimensions.get(key.value)
            if raw is None:
                raise KeyError(f"Missing dimension score: {key.value}")
            values[_FIELD_BY_KEY[key]] = Decimal(str(raw)).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            )
        return cls(**values)

    def to_mapping(self) -> dict[str, str]:
        return {key.value: str(score) for key, score in self.items()}


@dataclass(frozen=True, slots=True)
class Assessment:
    week: str
    dimensions: DimensionScores
    subscores: SubScores | None = None
    justifications: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    client: str = ""
    leader: str = ""
    delivery: str | None = None
    tech_lead: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    ratings: tuple[Assessment, ...] = ()

    def find_rating(self, week: str) -> Assessment | None:
        for rating in self.ratings:
            if rating.week == week:
                return rating
        return None


@dataclass(frozen=True, slots=True)
class PortfolioFilter:
    """Query-scoped filter; the status view replaces the old global toggle."""

    year: str | None = None
    delivery: str | None = None
    leader: str | None = None
    tech_lead: str | None = None
    status_view: ProjectStatus = ProjectStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class PortfolioStats:
    total: int
    average_health: Decimal | Literal["-"]
    at_risk_count: int


@dataclass(frozen=True, slots=True)
class ProjectSummary:
    project: Project
    assessment: Assessment | None
    overall: Decimal | Literal["-"]
    overall_status: TrafficLight | None
    dimensions: dict[DimensionKey, Decimal]
    dimension_statuses: dict[DimensionKey, TrafficLight]


@dataclass(frozen=True, slots=True)
class PortfolioSummary:
    stats: PortfolioStats
    average_status: TrafficLight | None
    rows: list[ProjectSummary]


@dataclass(frozen=True, slots=True)
class FilterOptions:
    years: list[str]
    deliveries: list[str]
    leaders: list[str]
    tech_leads: list[str]


@dataclass(frozen=True, slots=True)
class NamedSeries:
    label: str
    points: list[Decimal | None]
    color_hint: str | None = None
    is_aggregate: bool = False


@dataclass(frozen=True, slots=True)
class TrendSeries:
    periods: list[str]
    series: list[NamedSeries]


@dataclass(frozen=True, slots=True)
class SubCriterionDetail:
    key: str
    label: str
    score: int | None
    status: TrafficLight | None
    justification: str


@dataclass(frozen=True, slots=True)
class DimensionDetail:
    key: DimensionKey
    label: str
    score: Decimal
    status: TrafficLight
    sub_criteria: list[SubCriterionDetail]


@dataclass(frozen=True, slots=True)
class AssessmentDetail:
    week: str
    overall: Decimal | Literal["-"]
    overall_status: TrafficLight | None
    dimensions: list[DimensionDetail]


@dataclass(frozen=True, slots=True)
class HistoryItem:
    week: str
    overall: Decimal | Literal["-"]
    status: TrafficLight | None
