from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ..infrastructure.exceptions import EmptyInputError
from .filters import filter_projects
from .models import (
    NO_SCORE,
    Assessment,
    HistoryItem,
    PortfolioFilter,
    PortfolioStats,
    PortfolioSummary,
    Project,
    ProjectSummary,
)
from .scoring import Number, classify, overall_mean, overall_score, round_score, to_decimal
from .selection import assessment_history, select_relevant

# Wider than the critical band on purpose: a project showing "warning" on its
# badge still counts as at risk in the portfolio figures.
AT_RISK_THRESHOLD = Decimal(4)


def assessment_overall(assessment: Assessment) -> Decimal:
    """Unrounded overall mean of one assessment's five dimension scores."""
    mean = overall_mean(assessment.dimensions.values())
    if mean is None:
        raise EmptyInputError("overall score")
    return mean


def aggregate(
    projects: Iterable[Project],
    criteria: PortfolioFilter | None = None,
    *,
    at_risk_threshold: Number = AT_RISK_THRESHOLD,
) -> PortfolioStats:
    """
    Portfolio figures over the filtered projects.

    Projects without a relevant assessment count towards ``total`` only; they
    are neither scored as zero nor tallied as at risk.
    """
    criteria = criteria or PortfolioFilter()
    threshold = to_decimal(at_risk_threshold)
    selected = filter_projects(projects, criteria)

    scores: list[Decimal] = []
    for project in selected:
        relevant = select_relevant(project.ratings, criteria.year)
        if relevant is not None:
            scores.append(assessment_overall(relevant))

    average = round_score(sum(scores, Decimal(0)) / len(scores)) if scores else NO_SCORE
    return PortfolioStats(
        total=len(selected),
        average_health=average,
        at_risk_count=sum(1 for score in scores if score < threshold),
    )


def summarize_project(project: Project, year: str | None = None) -> ProjectSummary:
    """Dashboard row for one project under an optional year filter."""
    relevant = select_relevant(project.ratings, year)
    if relevant is None:
        return ProjectSummary(
            project=project,
            assessment=None,
            overall=NO_SCORE,
            overall_status=None,
            dimensions={},
            dimension_statuses={},
        )

    dimensions = dict(relevant.dimensions.items())
    overall = overall_score(dimensions.values())
    return ProjectSummary(
        project=project,
        assessment=relevant,
        overall=overall,
        overall_status=classify(overall),
        dimensions=dimensions,
        dimension_statuses={key: classify(score) for key, score in dimensions.items()},
    )


def summarize_portfolio(
    projects: Iterable[Project],
    criteria: PortfolioFilter | None = None,
    *,
    at_risk_threshold: Number = AT_RISK_THRESHOLD,
) -> PortfolioSummary:
    """Stats plus one row per filtered project, for a dashboard in one pass."""
    criteria = criteria or PortfolioFilter()
    projects = list(projects)
    stats = aggregate(projects, criteria, at_risk_threshold=at_risk_threshold)
    rows = [summarize_project(p, criteria.year) for p in filter_projects(projects, criteria)]
    average_status = None if stats.average_health == NO_SCORE else classify(stats.average_health)
    return PortfolioSummary(stats=stats, average_status=average_status, rows=rows)


def project_history(project: Project) -> list[HistoryItem]:
    """Every assessment of a project, newest first, with its overall score."""
    items = []
    for rating in assessment_history(project.ratings):
        overall = overall_score(rating.dimensions.values())
        items.append(
            HistoryItem(
                week=rating.week,
                overall=overall,
                status=None if overall == NO_SCORE else classify(overall),
            )
        )
    return items
