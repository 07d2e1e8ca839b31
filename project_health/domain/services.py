from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from ..infrastructure.exceptions import AssessmentNotFoundError, DuplicatePeriodWarning
from .models import (
    DIMENSIONS,
    NO_SCORE,
    Assessment,
    AssessmentDetail,
    DimensionDetail,
    DimensionScores,
    Project,
    ProjectStatus,
    SubCriterionDetail,
    SubScores,
    sub_key,
)
from .scoring import classify, dimension_average, overall_score


def clamp_rating(level: int | None) -> int | None:
    if level is None:
        return None
    if not (1 <= level <= 5):
        raise ValueError("Rating must be between 1 and 5 inclusive.")
    return int(level)


def current_week(today: date | None = None) -> str:
    """ISO week identifier of ``today``, e.g. ``2024-W07``."""
    iso_year, iso_week, _ = (today or date.today()).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


@dataclass(frozen=True, slots=True)
class RecordResult:
    """
    Outcome of recording an assessment.

    ``applied`` is False only when ``warning`` is set: the week already had an
    assessment and the caller has not confirmed the overwrite. ``project`` is
    then the unchanged input.
    """

    project: Project
    assessment: Assessment
    applied: bool
    replaced: bool = False
    warning: DuplicatePeriodWarning | None = None


def build_assessment(
    week: str,
    sub_scores: SubScores | Mapping[str, Any],
    justifications: Mapping[str, str] | None = None,
) -> Assessment:
    """Assessment whose dimension scores are derived from its sub-scores."""
    if not isinstance(sub_scores, SubScores):
        sub_scores = SubScores.from_mapping(sub_scores)
    for name, score in sub_scores.to_flat().items():
        try:
            clamp_rating(score)
        except ValueError as exc:
            raise ValueError(f"{name}: {exc}") from exc

    dimensions = DimensionScores.from_mapping(
        {key.value: dimension_average(scores, strict=True) for key, scores in sub_scores.items()}
    )
    notes = {k: v for k, v in (justifications or {}).items() if v}
    return Assessment(week=week, dimensions=dimensions, subscores=sub_scores, justifications=notes)


def record_assessment(
    project: Project,
    week: str,
    sub_scores: SubScores | Mapping[str, Any],
    justifications: Mapping[str, str] | None = None,
    *,
    overwrite: bool = False,
) -> RecordResult:
    """
    Add a weekly assessment to a project snapshot.

    A second assessment for the same week replaces the first, in its original
    position, but only with ``overwrite=True``. Without it the result carries a
    ``DuplicatePeriodWarning`` and nothing is applied.
    """
    assessment = build_assessment(week, sub_scores, justifications)
    existing = [i for i, rating in enumerate(project.ratings) if rating.week == week]

    if not existing:
        updated = replace(project, ratings=project.ratings + (assessment,))
        return RecordResult(project=updated, assessment=assessment, applied=True)

    if not overwrite:
        return RecordResult(
            project=project,
            assessment=assessment,
            applied=False,
            warning=DuplicatePeriodWarning(project.id, week),
        )

    ratings = list(project.ratings)
    ratings[existing[0]] = assessment
    updated = replace(project, ratings=tuple(ratings))
    return RecordResult(project=updated, assessment=assessment, applied=True, replaced=True)


def archive_project(project: Project) -> Project:
    """Move a project to the closed view. Assessments may still be recorded."""
    if project.status == ProjectStatus.CLOSED:
        return project
    return replace(project, status=ProjectStatus.CLOSED)


def assessment_detail(project: Project, week: str) -> AssessmentDetail:
    """Per-dimension breakdown of one assessment with labels and justifications."""
    rating = project.find_rating(week)
    if rating is None:
        raise AssessmentNotFoundError(project.id, week)

    dimensions: list[DimensionDetail] = []
    for key, info in DIMENSIONS.items():
        score = rating.dimensions[key]
        subs: list[SubCriterionDetail] = []
        for index, label in enumerate(info.sub_criteria):
            flat_key = sub_key(key, index)
            value = rating.subscores[key][index] if rating.subscores is not None else None
            subs.append(
                SubCriterionDetail(
                    key=flat_key,
                    label=label,
                    score=value,
                    status=classify(value) if value is not None else None,
                    justification=rating.justifications.get(flat_key, ""),
                )
            )
        dimensions.append(
            DimensionDetail(
                key=key, label=info.label, score=score, status=classify(score), sub_criteria=subs
            )
        )

    overall = overall_score(rating.dimensions.values())
    return AssessmentDetail(
        week=rating.week,
        overall=overall,
        overall_status=None if overall == NO_SCORE else classify(overall),
        dimensions=dimensions,
    )
