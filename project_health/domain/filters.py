from __future__ import annotations

import re
from collections.abc import Iterable

from .models import FilterOptions, PortfolioFilter, Project, ProjectStatus

YEAR_PREFIX = re.compile(r"^(\d{4})-")


def _matches(value: str | None, wanted: str | None) -> bool:
    if not wanted:
        return True
    return value == wanted


def filter_projects(
    projects: Iterable[Project], criteria: PortfolioFilter | None = None
) -> list[Project]:
    """
    Projects in the requested status view that match every attribute filter,
    in input order.

    The year is deliberately not applied: it only scopes which assessment is
    selected, so a project without ratings in that year stays in the list.
    """
    criteria = criteria or PortfolioFilter()
    view = ProjectStatus(criteria.status_view)
    return [
        project
        for project in projects
        if (project.status or ProjectStatus.ACTIVE) == view
        and _matches(project.delivery, criteria.delivery)
        and _matches(project.leader, criteria.leader)
        and _matches(project.tech_lead, criteria.tech_lead)
    ]


def _distinct(values: Iterable[str | None]) -> list[str]:
    return sorted({v for v in values if v})


def filter_options(projects: Iterable[Project]) -> FilterOptions:
    """Values offered by the portfolio filter controls; years newest first."""
    projects = list(projects)
    years = {
        match.group(1)
        for project in projects
        for rating in project.ratings
        if isinstance(rating.week, str) and (match := YEAR_PREFIX.match(rating.week))
    }
    return FilterOptions(
        years=sorted(years, reverse=True),
        deliveries=_distinct(p.delivery for p in projects),
        leaders=_distinct(p.leader for p in projects),
        tech_leads=_distinct(p.tech_lead for p in projects),
    )
