import pytest

from project_health.domain.filters import filter_options, filter_projects
from project_health.domain.models import PortfolioFilter, ProjectStatus


@pytest.fixture
def portfolio(make_project, make_assessment):
    return [
        make_project(
            "a",
            [make_assessment("2024-W05"), make_assessment("2025-W01")],
            delivery="Paris",
            leader="Ann",
            tech_lead="Tom",
        ),
        make_project("b", delivery="Lyon", leader="Bob"),
        make_project(
            "c",
            [make_assessment("2023-W40")],
            status=ProjectStatus.CLOSED,
            delivery="Paris",
            leader="Ann",
        ),
    ]


def _ids(projects):
    return [p.id for p in projects]


class TestFilterProjects:
    def test_default_view_is_active(self, portfolio):
        assert _ids(filter_projects(portfolio)) == ["a", "b"]

    def test_closed_view(self, portfolio):
        criteria = PortfolioFilter(status_view=ProjectStatus.CLOSED)
        assert _ids(filter_projects(portfolio, criteria)) == ["c"]

    def test_attribute_filters_combine(self, portfolio):
        assert _ids(filter_projects(portfolio, PortfolioFilter(delivery="Paris"))) == ["a"]
        assert _ids(filter_projects(portfolio, PortfolioFilter(leader="Bob"))) == ["b"]
        assert _ids(filter_projects(portfolio, PortfolioFilter(delivery="Paris", leader="Bob"))) == []

    def test_empty_string_means_no_filter(self, portfolio):
        assert _ids(filter_projects(portfolio, PortfolioFilter(tech_lead=""))) == ["a", "b"]

    def test_year_does_not_drop_projects(self, portfolio):
        assert _ids(filter_projects(portfolio, PortfolioFilter(year="2020"))) == ["a", "b"]

    def test_input_order_is_preserved(self, portfolio):
        reversed_portfolio = list(reversed(portfolio))
        assert _ids(filter_projects(reversed_portfolio)) == ["b", "a"]


def test_filter_options(portfolio):
    options = filter_options(portfolio)

    assert options.years == ["2025", "2024", "2023"]
    assert options.deliveries == ["Lyon", "Paris"]
    assert options.leaders == ["Ann", "Bob"]
    assert options.tech_leads == ["Tom"]


def test_filter_options_empty_portfolio():
    options = filter_options([])
    assert options.years == []
    assert options.deliveries == []


def test_filter_options_skip_malformed_weeks(make_project, make_assessment):
    project = make_project(
        "a", [make_assessment("bad"), make_assessment("W07-2024"), make_assessment("2024-W07")]
    )
    assert filter_options([project]).years == ["2024"]
