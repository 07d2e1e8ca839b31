from decimal import Decimal

from project_health.domain.models import (
    NO_SCORE,
    DimensionKey,
    PortfolioFilter,
    ProjectStatus,
    TrafficLight,
)
from project_health.domain.stats import (
    aggregate,
    project_history,
    summarize_portfolio,
    summarize_project,
)


class TestAggregate:
    def test_empty_portfolio(self):
        stats = aggregate([])
        assert stats.total == 0
        assert stats.average_health == NO_SCORE
        assert stats.at_risk_count == 0

    def test_average_and_at_risk(self, make_project, make_assessment):
        projects = [
            make_project("a", [make_assessment("2024-W10", 4)]),
            make_project("b", [make_assessment("2024-W10", 3)]),
        ]
        stats = aggregate(projects)

        assert stats.total == 2
        assert stats.average_health == Decimal("3.5")
        assert stats.at_risk_count == 1

    def test_unrated_projects_count_only_towards_total(self, make_project, make_assessment):
        projects = [
            make_project("a", [make_assessment("2024-W10", 4)]),
            make_project("b", [make_assessment("2024-W10", 3)]),
            make_project("c"),
        ]
        stats = aggregate(projects)

        assert stats.total == 3
        assert stats.average_health == Decimal("3.5")
        assert stats.at_risk_count == 1

    def test_no_rated_projects(self, make_project):
        stats = aggregate([make_project("a"), make_project("b")])
        assert stats.total == 2
        assert stats.average_health == NO_SCORE
        assert stats.at_risk_count == 0

    def test_at_risk_uses_unrounded_overall(self, make_project, make_assessment):
        """3.98 displays as 4.0 but is still below the at-risk threshold."""
        project = make_project("a", [make_assessment("2024-W10", 4, 4, 4, 4, "3.9")])

        stats = aggregate([project])
        row = summarize_project(project)

        assert stats.at_risk_count == 1
        assert stats.average_health == Decimal("4.0")
        assert row.overall == Decimal("4.0")
        assert row.overall_status == TrafficLight.GOOD

    def test_custom_threshold(self, make_project, make_assessment):
        projects = [make_project("a", [make_assessment("2024-W10", 3)])]
        assert aggregate(projects, at_risk_threshold=3).at_risk_count == 0
        assert aggregate(projects, at_risk_threshold="3.5").at_risk_count == 1

    def test_year_scopes_the_relevant_assessment(self, make_project, make_assessment):
        project = make_project(
            "a", [make_assessment("2024-W10", 2), make_assessment("2025-W05", 5)]
        )

        assert aggregate([project]).average_health == Decimal("5.0")
        in_2024 = aggregate([project], PortfolioFilter(year="2024"))
        assert in_2024.average_health == Decimal("2.0")
        assert in_2024.at_risk_count == 1

        in_2023 = aggregate([project], PortfolioFilter(year="2023"))
        assert in_2023.total == 1
        assert in_2023.average_health == NO_SCORE

    def test_closed_projects_excluded_from_active_view(self, make_project, make_assessment):
        projects = [
            make_project("a", [make_assessment("2024-W10", 5)]),
            make_project("b", [make_assessment("2024-W10", 1)], status=ProjectStatus.CLOSED),
        ]
        assert aggregate(projects).average_health == Decimal("5.0")
        closed = aggregate(projects, PortfolioFilter(status_view=ProjectStatus.CLOSED))
        assert closed.average_health == Decimal("1.0")


class TestSummaries:
    def test_unrated_project_row(self, make_project):
        row = summarize_project(make_project("a"))
        assert row.assessment is None
        assert row.overall == NO_SCORE
        assert row.overall_status is None
        assert row.dimensions == {}

    def test_rated_project_row(self, make_project, make_assessment):
        project = make_project("a", [make_assessment("2024-W10", "4.5", 3, "2.5", 4, 5)])
        row = summarize_project(project)

        assert row.assessment.week == "2024-W10"
        assert row.overall == Decimal("3.8")
        assert row.overall_status == TrafficLight.WARNING
        assert row.dimensions[DimensionKey.DELIVERY] == Decimal("4.5")
        assert row.dimension_statuses[DimensionKey.STAKEHOLDERS] == TrafficLight.CRITICAL

    def test_portfolio_summary(self, make_project, make_assessment):
        projects = [
            make_project("a", [make_assessment("2024-W10", 4)]),
            make_project("b"),
        ]
        summary = summarize_portfolio(projects)

        assert summary.stats.total == 2
        assert summary.average_status == TrafficLight.GOOD
        assert [row.project.id for row in summary.rows] == ["a", "b"]

    def test_portfolio_summary_without_scores(self, make_project):
        summary = summarize_portfolio([make_project("a")])
        assert summary.average_status is None


def test_project_history(make_project, make_assessment):
    project = make_project(
        "a", [make_assessment("2024-W01", 2), make_assessment("2024-W03", "4.5")]
    )
    history = project_history(project)

    assert [item.week for item in history] == ["2024-W03", "2024-W01"]
    assert history[0].overall == Decimal("4.5")
    assert history[0].status == TrafficLight.GOOD
    assert history[1].status == TrafficLight.CRITICAL
