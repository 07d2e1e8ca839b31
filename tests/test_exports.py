import json

import pandas as pd
import pytest

from project_health.domain.models import ProjectStatus
from project_health.domain.trends import build_trend
from project_health.infrastructure.exceptions import RecordImportError
from project_health.utils.exports import (
    EXPORT_COLUMNS,
    make_json_export_payload,
    make_xlsx_export_bytes,
    projects_frame,
    projects_from_payload,
)
from project_health.utils.trend_chart import make_trend_figure, trend_figure_dict


@pytest.fixture
def projects(make_project, make_assessment):
    return [
        make_project(
            "p1",
            [make_assessment("2024-W01", 4), make_assessment("2024-W02", "3.5")],
            client="ACME",
            tech_lead="Tom",
        ),
        make_project("p2", status=ProjectStatus.CLOSED),
    ]


class TestJsonExport:
    def test_payload_uses_record_format(self, projects):
        payload = json.loads(make_json_export_payload(projects))

        assert [p["id"] for p in payload] == ["p1", "p2"]
        assert payload[0]["techLead"] == "Tom"
        assert payload[1]["status"] == "closed"

    def test_payload_reimports(self, projects):
        assert projects_from_payload(make_json_export_payload(projects)) == projects

    def test_invalid_json(self):
        with pytest.raises(RecordImportError):
            projects_from_payload("{not json")

    def test_payload_must_be_a_list(self):
        with pytest.raises(RecordImportError):
            projects_from_payload('{"id": "p1"}')

    def test_invalid_record_reports_index(self):
        with pytest.raises(RecordImportError) as excinfo:
            projects_from_payload([{"id": "p1"}, {"name": "no id"}])
        assert excinfo.value.details["index"] == 1


class TestTabularExport:
    def test_one_row_per_assessment(self, projects):
        frame = projects_frame(projects)

        assert list(frame.columns) == EXPORT_COLUMNS
        assert len(frame) == 3
        assert list(frame["Week"][:2]) == ["2024-W01", "2024-W02"]
        assert frame["Overall"].iloc[1] == 3.5
        assert pd.isna(frame["Week"].iloc[2])

    def test_empty_portfolio(self):
        frame = projects_frame([])
        assert list(frame.columns) == EXPORT_COLUMNS
        assert frame.empty

    def test_xlsx_bytes(self, projects):
        data = make_xlsx_export_bytes(projects)
        assert data[:2] == b"PK"


class TestTrendChart:
    def test_one_trace_per_series(self, projects):
        trend = build_trend(projects[:1])
        figure = make_trend_figure(trend, title="Health")

        assert len(figure.data) == len(trend.series)
        assert figure.data[0].name == "Portfolio Average"
        assert figure.data[0].connectgaps is False

    def test_figure_dict_is_json_ready(self, projects):
        figure = trend_figure_dict(build_trend(projects[:1]))

        assert set(figure) >= {"data", "layout"}
        json.dumps(figure)
