from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from project_health.domain.models import all_sub_keys
from project_health.infrastructure.db import create_session_factory
from project_health.infrastructure.models import Base
from project_health.web.dependencies import get_db_session
from project_health.web.main import create_application


@pytest.fixture
def client() -> Iterator[TestClient]:
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = create_session_factory(engine)

    def override_session():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app = create_application()
    app.dependency_overrides[get_db_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def _scores(value: int = 4) -> dict[str, int]:
    return {key: value for key in all_sub_keys()}


def _create_project(client: TestClient, **overrides) -> dict:
    payload = {"name": "Billing revamp", "client": "ACME", "leader": "Dana", "delivery": "Paris"}
    payload.update(overrides)
    response = client.post("/api/projects", json=payload)
    assert response.status_code == 201
    return response.json()


def test_healthcheck(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_dimensions(client: TestClient) -> None:
    dimensions = client.get("/api/dimensions").json()

    assert [d["key"] for d in dimensions] == ["EN", "EQ", "SH", "VA", "RI"]
    assert dimensions[0]["sub_criteria"][0] == {"key": "EN_0", "label": "Schedule compliance"}


def test_project_lifecycle(client: TestClient) -> None:
    project = _create_project(client)
    assert project["status"] == "active"
    assert project["assessment_count"] == 0

    fetched = client.get(f"/api/projects/{project['id']}").json()
    assert fetched["name"] == "Billing revamp"

    updated = client.put(f"/api/projects/{project['id']}", json={"leader": "Eli"}).json()
    assert updated["leader"] == "Eli"
    assert updated["delivery"] == "Paris"

    archived = client.post(f"/api/projects/{project['id']}/archive").json()
    assert archived["status"] == "closed"
    assert client.get("/api/projects").json() == []
    assert len(client.get("/api/projects", params={"view": "closed"}).json()) == 1


def test_missing_project_is_404(client: TestClient) -> None:
    assert client.get("/api/projects/nope").status_code == 404
    assert client.post("/api/projects/nope/archive").status_code == 404


def test_invalid_project_is_400(client: TestClient) -> None:
    response = client.post("/api/projects", json={"name": "", "client": "ACME", "leader": "Dana"})
    assert response.status_code == 400


def test_submit_assessment_and_duplicate(client: TestClient) -> None:
    project = _create_project(client)
    url = f"/api/projects/{project['id']}/assessments"

    created = client.post(url, json={"week": "2024-W07", "scores": _scores(4)})
    assert created.status_code == 201
    body = created.json()
    assert body["applied"] is True
    assert body["assessment"]["overall"] == 4.0
    assert body["assessment"]["status"] == "good"

    duplicate = client.post(url, json={"week": "2024-W07", "scores": _scores(2)})
    assert duplicate.status_code == 409
    assert "already exists" in duplicate.json()["detail"]

    replaced = client.post(
        url, json={"week": "2024-W07", "scores": _scores(2), "overwrite": True}
    )
    assert replaced.status_code == 201
    assert replaced.json()["replaced"] is True

    history = client.get(url).json()
    assert history == [{"week": "2024-W07", "overall": 2.0, "status": "critical"}]


def test_submit_assessment_invalid_score(client: TestClient) -> None:
    project = _create_project(client)
    scores = _scores()
    scores["EN_0"] = 6

    response = client.post(
        f"/api/projects/{project['id']}/assessments", json={"week": "2024-W07", "scores": scores}
    )
    assert response.status_code == 400


def test_assessment_detail(client: TestClient) -> None:
    project = _create_project(client)
    url = f"/api/projects/{project['id']}/assessments"
    client.post(
        url,
        json={"week": "2024-W07", "scores": _scores(3), "justifications": {"RI_1": "Vendor late"}},
    )

    detail = client.get(f"{url}/2024-W07").json()
    assert detail["overall"] == 3.0
    assert detail["overall_status"] == "warning"
    risk = detail["dimensions"][4]
    assert risk["key"] == "RI"
    assert risk["sub_criteria"][1]["justification"] == "Vendor late"

    assert client.get(f"{url}/2024-W08").status_code == 404


def test_dashboard(client: TestClient) -> None:
    rated = _create_project(client)
    _create_project(client, name="Portal", delivery="Lyon")
    client.post(
        f"/api/projects/{rated['id']}/assessments",
        json={"week": "2024-W07", "scores": _scores(3)},
    )

    dashboard = client.get("/api/dashboard").json()
    assert dashboard["stats"] == {
        "total": 2,
        "average_health": 3.0,
        "average_status": "warning",
        "at_risk_count": 1,
    }
    assert dashboard["rows"][0]["overall"] == 3.0
    assert dashboard["rows"][0]["dimensions"]["EN"] == 3.0
    assert dashboard["rows"][1]["overall"] is None

    filtered = client.get("/api/dashboard", params={"delivery": "Lyon"}).json()
    assert filtered["stats"]["total"] == 1
    assert filtered["stats"]["average_health"] is None


def test_dashboard_rejects_bad_filters(client: TestClient) -> None:
    assert client.get("/api/dashboard", params={"year": "24"}).status_code == 400
    assert client.get("/api/dashboard", params={"view": "archived"}).status_code == 400


def test_trend_and_figure(client: TestClient) -> None:
    project = _create_project(client)
    for week in ["2024-W01", "2024-W02"]:
        client.post(
            f"/api/projects/{project['id']}/assessments",
            json={"week": week, "scores": _scores(4)},
        )

    trend = client.get("/api/dashboard/trend").json()
    assert trend["periods"] == ["2024-W01", "2024-W02"]
    assert trend["series"][0]["is_aggregate"] is True
    assert trend["series"][1]["points"] == [4.0, 4.0]

    windowed = client.get("/api/dashboard/trend", params={"window": 1}).json()
    assert windowed["periods"] == ["2024-W02"]

    figure = client.get("/api/dashboard/trend/figure").json()
    assert len(figure["data"]) == 2


def test_filters(client: TestClient) -> None:
    project = _create_project(client, tech_lead="Tom")
    client.post(
        f"/api/projects/{project['id']}/assessments",
        json={"week": "2024-W07", "scores": _scores()},
    )

    assert client.get("/api/filters").json() == {
        "years": ["2024"],
        "deliveries": ["Paris"],
        "leaders": ["Dana"],
        "tech_leads": ["Tom"],
    }


def test_export_and_import(client: TestClient) -> None:
    project = _create_project(client)
    client.post(
        f"/api/projects/{project['id']}/assessments",
        json={"week": "2024-W07", "scores": _scores()},
    )

    exported = client.get("/api/export/json").json()
    assert exported[0]["id"] == project["id"]

    xlsx = client.get("/api/export/xlsx")
    assert xlsx.status_code == 200
    assert xlsx.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    exported.append({"id": "legacy", "name": "Legacy", "ratings": []})
    result = client.post("/api/import", json={"projects": exported, "replace_all": True}).json()
    assert result["status"] == "ok"
    assert result["processed"] == 2
    assert len(client.get("/api/projects").json()) == 2


def test_import_rejects_bad_records(client: TestClient) -> None:
    result = client.post("/api/import", json={"projects": [{"name": "no id"}]}).json()
    assert result["status"] == "error"
    assert result["processed"] == 0


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/api/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/api/health").headers["X-Request-ID"]
