from __future__ import annotations

from sqlalchemy import create_engine, func, select

from project_health.infrastructure.models import ProjectORM
from project_health.utils.exports import make_json_export_payload
from scripts import import_projects


def _count(db_path) -> int:
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(ProjectORM)).scalar_one()
    finally:
        engine.dispose()


def test_imports_export_file(tmp_path, make_project, make_assessment, capsys) -> None:
    source = tmp_path / "export.json"
    source.write_text(
        make_json_export_payload(
            [make_project("p1", [make_assessment("2024-W07", 4)]), make_project("p2")]
        ),
        encoding="utf-8",
    )
    db_path = tmp_path / "health.db"

    assert import_projects.main([str(source), "--sqlite-path", str(db_path)]) == 0
    assert "Imported 2 projects" in capsys.readouterr().out
    assert _count(db_path) == 2


def test_replace_all_drops_missing_projects(tmp_path, make_project) -> None:
    db_path = tmp_path / "health.db"
    first = tmp_path / "first.json"
    first.write_text(make_json_export_payload([make_project("p1"), make_project("p2")]))
    second = tmp_path / "second.json"
    second.write_text(make_json_export_payload([make_project("p3")]))

    import_projects.main([str(first), "--sqlite-path", str(db_path)])
    import_projects.main([str(second), "--sqlite-path", str(db_path), "--replace-all"])

    assert _count(db_path) == 1


def test_invalid_file_is_reported(tmp_path, capsys) -> None:
    source = tmp_path / "broken.json"
    source.write_text("{not json")

    code = import_projects.main([str(source), "--sqlite-path", str(tmp_path / "health.db")])

    assert code == 1
    assert "Import failed" in capsys.readouterr().err


def test_missing_file(tmp_path) -> None:
    assert import_projects.main([str(tmp_path / "nope.json")]) == 2
