"""
Conversion between domain snapshots and plain records.

The record shape is the one the tracker has always persisted::

    {"id": "...", "name": "...", "client": "...", "leader": "...",
     "delivery": "...", "techLead": "...", "status": "active",
     "ratings": [{"week": "2024-W07",
                  "dimensions": {"EN": "4.0", ...},
                  "subdimensions": {"EN_0": 4, ...},
                  "justifications": {"EN_0": "...", ...}}]}

Legacy defaults are resolved here, once, so the engine never sees them: a
missing status is ``active``, dimension values may be strings, and records
without sub-scores keep their stored dimension averages.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .models import (
    Assessment,
    DimensionScores,
    Project,
    ProjectStatus,
    SubScores,
)
from .scoring import dimension_average


def resolve_status(value: Any) -> ProjectStatus:
    if isinstance(value, ProjectStatus):
        return value
    if isinstance(value, str) and value.strip().lower() == ProjectStatus.CLOSED.value:
        return ProjectStatus.CLOSED
    return ProjectStatus.ACTIVE


def assessment_from_record(record: Mapping[str, Any]) -> Assessment:
    week = record.get("week")
    if not week:
        raise ValueError("Assessment record has no week")

    subscores: SubScores | None = None
    raw_subs = record.get("subdimensions") or {}
    if raw_subs:
        try:
            subscores = SubScores.from_mapping(raw_subs)
        except (KeyError, TypeError, ValueError):
            subscores = None

    if subscores is not None:
        dimensions = DimensionScores.from_mapping(
            {key.value: dimension_average(scores, strict=True) for key, scores in subscores.items()}
        )
    else:
        dimensions = DimensionScores.from_mapping(record.get("dimensions") or {})

    justifications = {
        str(k): str(v) for k, v in (record.get("justifications") or {}).items() if v
    }
    return Assessment(
        week=str(week), dimensions=dimensions, subscores=subscores, justifications=justifications
    )


def assessment_to_record(assessment: Assessment) -> dict[str, Any]:
    return {
        "week": assessment.week,
        "dimensions": assessment.dimensions.to_mapping(),
        "subdimensions": assessment.subscores.to_flat() if assessment.subscores else {},
        "justifications": dict(assessment.justifications),
    }


def _dedupe_weeks(ratings: Iterable[Assessment]) -> tuple[Assessment, ...]:
    # A later duplicate replaces the earlier one in the earlier one's slot.
    by_week: dict[str, Assessment] = {}
    for rating in ratings:
        by_week[rating.week] = rating
    return tuple(by_week.values())


def project_from_record(record: Mapping[str, Any]) -> Project:
    project_id = record.get("id")
    if not project_id:
        raise ValueError("Project record has no id")
    ratings = [assessment_from_record(r) for r in record.get("ratings") or []]
    return Project(
        id=str(project_id),
        name=record.get("name") or "",
        client=record.get("client") or "",
        leader=record.get("leader") or "",
        delivery=record.get("delivery") or None,
        tech_lead=record.get("techLead", record.get("tech_lead")) or None,
        status=resolve_status(record.get("status")),
        ratings=_dedupe_weeks(ratings),
    )


def project_to_record(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "client": project.client,
        "leader": project.leader,
        "delivery": project.delivery,
        "techLead": project.tech_lead,
        "status": project.status.value,
        "ratings": [assessment_to_record(r) for r in project.ratings],
    }
