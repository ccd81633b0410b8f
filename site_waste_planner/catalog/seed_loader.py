"""
Project bundle loader: JSON → SQLite.

A bundle holds everything the planner needs for one project::

    {
      "project":        {"project_id": "...", "region": "...", "primary_partner_id": "..."},
      "streams":        [{"name": "Metals", "default_density": 7850}, ...],
      "facilities":     [{"facility_id": "...", "name": "...", "accepted_streams": [...]}, ...],
      "forecast_items": [{"item_id": "...", "quantity": 30, "unit": "m", ...}, ...],
      "distances":      [{"facility_id": "...", "distance_m": 12400, "duration_s": 960}, ...],
      "plan_document":  {...}
    }

Every section except ``project`` is optional. Distances may be given in
metres/seconds (``distance_m``/``duration_s``, as returned by a distance
matrix) or already in ``distance_km``/``duration_min``. The plan document is
stored as given; legacy shapes are canonicalised when read.

Validation rules
----------------
- ``project.project_id`` is required.
- Duplicate facility ids or forecast item ids are rejected.
- Forecast items inherit the bundle's project id when they carry none, and
  may not name a different project.
- Field-level problems surface as ``pydantic.ValidationError``.

Usage
-----
    from site_waste_planner.catalog.seed_loader import load_project_bundle

    with get_connection(db_path) as conn:
        counts = load_project_bundle(conn, Path("config/projects/sample_project.json"))
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from site_waste_planner.db.repositories.distance_repo import DistanceRepository
from site_waste_planner.db.repositories.facility_repo import FacilityRepository
from site_waste_planner.db.repositories.forecast_item_repo import ForecastItemRepository
from site_waste_planner.db.repositories.plan_document_repo import PlanDocumentRepository
from site_waste_planner.db.repositories.project_repo import ProjectRepository
from site_waste_planner.db.repositories.stream_repo import StreamRepository
from site_waste_planner.models.facility import DistanceEntry, FacilityCandidate, Project
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import CURRENT_SCHEMA_VERSION
from site_waste_planner.models.stream import StreamDefinition

logger = logging.getLogger(__name__)


# ── Validation ────────────────────────────────────────────────────────────────


def _check_unique(records: list[dict[str, Any]], key: str, label: str) -> None:
    seen: set[str] = set()
    for i, rec in enumerate(records):
        value = rec.get(key)
        if not value:
            raise ValueError(f"{label} at index {i} is missing '{key}'.")
        if value in seen:
            raise ValueError(f"Duplicate {label.lower()} {key} '{value}' at index {i}.")
        seen.add(value)


def validate_bundle(bundle: dict[str, Any]) -> str:
    """Raise ``ValueError`` for structural problems; return the project id."""
    project = bundle.get("project")
    if not isinstance(project, dict) or not project.get("project_id"):
        raise ValueError("Bundle is missing 'project.project_id'.")
    project_id = str(project["project_id"])

    _check_unique(bundle.get("facilities", []), "facility_id", "Facility")
    items = bundle.get("forecast_items", [])
    _check_unique(items, "item_id", "Forecast item")
    for i, rec in enumerate(items):
        other = rec.get("project_id")
        if other and other != project_id:
            raise ValueError(
                f"Forecast item at index {i} belongs to project '{other}', not '{project_id}'."
            )
    return project_id


def _distance_entry(rec: dict[str, Any]) -> DistanceEntry:
    if "distance_m" in rec or "duration_s" in rec:
        return DistanceEntry.from_raw(rec["facility_id"], rec.get("distance_m"), rec.get("duration_s"))
    return DistanceEntry(
        facility_id=rec["facility_id"],
        distance_km=rec.get("distance_km"),
        duration_min=rec.get("duration_min"),
    )


# ── Loader ────────────────────────────────────────────────────────────────────


def load_bundle(conn: sqlite3.Connection, bundle: dict[str, Any]) -> dict[str, int]:
    """Upsert a parsed bundle. Returns row counts per section.

    Runs inside the caller's transaction; nothing is committed here.
    """
    project_id = validate_bundle(bundle)

    project = Project(**bundle["project"])
    ProjectRepository(conn).upsert(project)

    streams = [StreamDefinition(**rec) for rec in bundle.get("streams", [])]
    stream_repo = StreamRepository(conn)
    for stream in streams:
        stream_repo.upsert(stream)

    facilities = [FacilityCandidate(**rec) for rec in bundle.get("facilities", [])]
    facility_repo = FacilityRepository(conn)
    for facility in facilities:
        facility_repo.upsert(facility)

    items = [
        ForecastLineItem(**{**rec, "project_id": project_id})
        for rec in bundle.get("forecast_items", [])
    ]
    item_repo = ForecastItemRepository(conn)
    for item in items:
        item_repo.upsert(item)

    distances = [_distance_entry(rec) for rec in bundle.get("distances", [])]
    distance_repo = DistanceRepository(conn)
    for entry in distances:
        distance_repo.upsert(project_id, entry)

    documents = 0
    raw_document = bundle.get("plan_document")
    if isinstance(raw_document, dict):
        version = raw_document.get("schema_version", 1)
        PlanDocumentRepository(conn).write_raw(
            project_id,
            raw_document,
            version if isinstance(version, int) else CURRENT_SCHEMA_VERSION,
        )
        documents = 1

    counts = {
        "projects": 1,
        "streams": len(streams),
        "facilities": len(facilities),
        "forecast_items": len(items),
        "distances": len(distances),
        "plan_documents": documents,
    }
    logger.info("Loaded bundle for %s: %s", project_id, counts)
    return counts


def load_project_bundle(conn: sqlite3.Connection, path: Path) -> dict[str, int]:
    """Read a bundle JSON file and load it.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the bundle is structurally invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Project bundle not found: {path}")
    bundle = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(bundle, dict):
        raise ValueError(f"Project bundle must be a JSON object: {path}")
    return load_bundle(conn, bundle)
