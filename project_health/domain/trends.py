from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from .models import NamedSeries, Project, TrendSeries
from .scoring import TWO_DECIMALS, round_score
from .selection import in_year
from .stats import assessment_overall

DEFAULT_WINDOW = 12
AVERAGE_LABEL = "Portfolio Average"
AVERAGE_COLOR = "#1e3a5f"
SERIES_COLORS = ("#3182ce", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#6366f1")


def trend_periods(
    projects: Iterable[Project], year: str | None = None, window: int = DEFAULT_WINDOW
) -> list[str]:
    """
    Distinct assessment weeks in ascending order. With a year, every week of
    that year; without one, only the most recent ``window`` weeks.
    """
    weeks = {
        rating.week
        for project in projects
        for rating in project.ratings
        if isinstance(rating.week, str) and in_year(rating.week, year)
    }
    periods = sorted(weeks)
    if not year:
        periods = periods[-window:] if window > 0 else []
    return periods


def _scores_by_week(project: Project, periods: set[str]) -> dict[str, Decimal]:
    return {
        rating.week: assessment_overall(rating)
        for rating in project.ratings
        if rating.week in periods
    }


def build_trend(
    projects: Iterable[Project], year: str | None = None, window: int = DEFAULT_WINDOW
) -> TrendSeries:
    """
    Period-aligned health series: the portfolio average first, then one line
    per project in input order.

    Points are exact-period only. A project without an assessment in a week
    gets ``None`` there and a week nobody rated averages to ``None``; nothing
    is carried forward, so missing data stays distinguishable from a flat
    score.
    """
    projects = list(projects)
    periods = trend_periods(projects, year, window)
    period_set = set(periods)
    per_project = [_scores_by_week(project, period_set) for project in projects]

    average_points: list[Decimal | None] = []
    for week in periods:
        observed = [by_week[week] for by_week in per_project if week in by_week]
        if observed:
            mean = sum(observed, Decimal(0)) / len(observed)
            average_points.append(round_score(mean, TWO_DECIMALS))
        else:
            average_points.append(None)

    series = [NamedSeries(AVERAGE_LABEL, average_points, AVERAGE_COLOR, is_aggregate=True)]
    for index, (project, scores) in enumerate(zip(projects, per_project)):
        points = [
            round_score(scores[week], TWO_DECIMALS) if week in scores else None
            for week in periods
        ]
        series.append(
            NamedSeries(project.name, points, SERIES_COLORS[index % len(SERIES_COLORS)])
        )

    return TrendSeries(periods=periods, series=series)
