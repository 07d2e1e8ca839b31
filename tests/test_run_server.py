from __future__ import annotations

import pytest

from project_health.infrastructure.exceptions import ConfigurationError
from scripts import run_server


def test_main_prepares_schema_and_starts_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, dict]] = []

    monkeypatch.setattr(run_server, "configure_logging", lambda: None)
    monkeypatch.setattr(run_server, "ensure_schema", lambda: calls.append(("schema", {})))
    monkeypatch.setattr(
        run_server.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs))
    )

    run_server.main(["--port", "9000", "--no-reload"])

    assert calls[0][0] == "schema"
    target, kwargs = calls[1]
    assert target == "project_health.web.main:app"
    assert kwargs["port"] == 9000
    assert kwargs["reload"] is False


def test_ensure_schema_rejects_bad_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(run_server, "is_database_configured", lambda: False)

    with pytest.raises(ConfigurationError):
        run_server.ensure_schema()
