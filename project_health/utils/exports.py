from __future__ import annotations

import io
import json
from collections.abc import Iterable
from typing import Any

import pandas as pd

from ..domain.models import DimensionKey, Project
from ..domain.records import project_from_record, project_to_record
from ..domain.stats import assessment_overall
from ..domain.scoring import round_score
from ..infrastructure.exceptions import RecordImportError

EXPORT_COLUMNS = [
    "ProjectID",
    "Project",
    "Client",
    "Leader",
    "Delivery",
    "TechLead",
    "Status",
    "Week",
    *[key.value for key in DimensionKey],
    "Overall",
]


def make_json_export_payload(projects: Iterable[Project]) -> str:
    """Projects in the persisted record format, ready to re-import."""
    return json.dumps([project_to_record(p) for p in projects], indent=2, ensure_ascii=False)


def projects_from_payload(payload: str | bytes | list[dict[str, Any]]) -> list[Project]:
    """Parse a JSON export (or an already-decoded list of records)."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise RecordImportError(f"Payload is not valid JSON: {e}", source="json") from e

    if not isinstance(payload, list):
        raise RecordImportError("Expected a JSON array of project records", source="json")

    projects: list[Project] = []
    for index, record in enumerate(payload):
        if not isinstance(record, dict):
            raise RecordImportError(f"Record {index} is not an object", source="json")
        try:
            projects.append(project_from_record(record))
        except (KeyError, ValueError, ArithmeticError) as e:
            raise RecordImportError(
                f"Record {index} is invalid: {e}", source="json", details={"index": index}
            ) from e
    return projects


def projects_frame(projects: Iterable[Project]) -> pd.DataFrame:
    """One row per project and assessment; unrated projects get a single empty row."""
    rows: list[dict[str, Any]] = []
    for project in projects:
        base = {
            "ProjectID": project.id,
            "Project": project.name,
            "Client": project.client,
            "Leader": project.leader,
            "Delivery": project.delivery,
            "TechLead": project.tech_lead,
            "Status": project.status.value,
        }
        if not project.ratings:
            rows.append(base)
            continue
        for rating in project.ratings:
            row = dict(base, Week=rating.week)
            for key, score in rating.dimensions.items():
                row[key.value] = float(score)
            row["Overall"] = float(round_score(assessment_overall(rating)))
            rows.append(row)

    frame = pd.DataFrame(rows)
    for column in EXPORT_COLUMNS:
        if column not in frame.columns:
            frame[column] = pd.NA
    return frame[EXPORT_COLUMNS]


def make_xlsx_export_bytes(projects: Iterable[Project]) -> bytes:
    """Create a single-sheet Excel export of every project assessment."""
    frame = projects_frame(projects)
    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        frame.to_excel(writer, index=False, sheet_name="Assessments")
    return bio.getvalue()
