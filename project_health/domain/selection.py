from __future__ import annotations

from collections.abc import Iterable

from .models import Assessment


def _week_key(assessment: Assessment) -> tuple[int, str]:
    # Non-string weeks from damaged records sort before every real week.
    week = assessment.week
    if isinstance(week, str):
        return (1, week)
    return (0, "")


def in_year(week: object, year: str | None) -> bool:
    """True when ``week`` belongs to ``year``; malformed weeks never match."""
    if not year:
        return True
    return isinstance(week, str) and week.startswith(year)


def latest_assessment(assessments: Iterable[Assessment]) -> Assessment | None:
    """The assessment with the greatest ISO week, or ``None``."""
    return max(assessments, key=_week_key, default=None)


def select_relevant(assessments: Iterable[Assessment], year: str | None = None) -> Assessment | None:
    """
    Pick the assessment that represents a project's current state.

    Without a year this is the latest assessment. With a year, the latest
    assessment is kept if it already belongs to that year; only otherwise is
    the latest assessment inside the year used. Returns ``None`` when the
    project has no assessment in the year.
    """
    candidates = list(assessments)
    latest = latest_assessment(candidates)
    if not year or latest is None or in_year(latest.week, year):
        return latest
    return latest_assessment(a for a in candidates if in_year(a.week, year))


def assessment_history(assessments: Iterable[Assessment]) -> list[Assessment]:
    """Assessments newest first."""
    return sorted(assessments, key=_week_key, reverse=True)
