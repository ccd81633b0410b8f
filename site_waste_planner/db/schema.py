"""
SQLite schema DDL.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Table order follows foreign keys:
  1. projects
  2. waste_streams       (no FKs)
  3. facilities          (no FKs; accepted_streams stored as a JSON array)
  4. forecast_items      (→ projects)
  5. facility_distances  (→ projects)
  6. plan_documents      (→ projects; document stored as JSON)
  7. run_metadata        (no FKs)
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_PROJECTS = """
CREATE TABLE IF NOT EXISTS projects (
    project_id          TEXT    PRIMARY KEY,
    name                TEXT,
    region              TEXT,
    primary_partner_id  TEXT,
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_WASTE_STREAMS = """
CREATE TABLE IF NOT EXISTS waste_streams (
    stream_id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    name                        TEXT    NOT NULL UNIQUE,
    default_density             REAL,
    default_linear_mass_factor  REAL,
    is_active                   INTEGER NOT NULL DEFAULT 1
);
"""

_DDL_FACILITIES = """
CREATE TABLE IF NOT EXISTS facilities (
    facility_id       TEXT    PRIMARY KEY,
    name              TEXT    NOT NULL,
    partner_id        TEXT,
    partner_name      TEXT,
    region            TEXT,
    accepted_streams  TEXT    NOT NULL DEFAULT '[]',
    cost_per_tonne    REAL,
    carbon_per_tonne  REAL,
    diversion_rating  REAL
);

CREATE INDEX IF NOT EXISTS idx_facilities_region
    ON facilities (region, partner_id);
"""

_DDL_FORECAST_ITEMS = """
CREATE TABLE IF NOT EXISTS forecast_items (
    item_id               TEXT    PRIMARY KEY,
    project_id            TEXT    NOT NULL REFERENCES projects(project_id),
    item_name             TEXT,
    material_type         TEXT,
    quantity              REAL    NOT NULL DEFAULT 0,
    excess_percent        REAL    NOT NULL DEFAULT 0,
    unit                  TEXT    NOT NULL DEFAULT 'tonne',
    linear_mass_factor    REAL,
    density               REAL,
    allocated_stream_key  TEXT,
    computed_waste_qty    REAL,
    computed_waste_kg     REAL,
    updated_at            TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_forecast_items_project
    ON forecast_items (project_id);
"""

_DDL_FACILITY_DISTANCES = """
CREATE TABLE IF NOT EXISTS facility_distances (
    project_id    TEXT    NOT NULL REFERENCES projects(project_id),
    facility_id   TEXT    NOT NULL,
    distance_km   REAL,
    duration_min  REAL,
    PRIMARY KEY (project_id, facility_id)
);
"""

_DDL_PLAN_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS plan_documents (
    project_id      TEXT    PRIMARY KEY REFERENCES projects(project_id),
    schema_version  INTEGER NOT NULL,
    document        TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug         TEXT    NOT NULL UNIQUE,
    planning_stage   TEXT    NOT NULL,
    project_id       TEXT,
    status           TEXT    NOT NULL,
    config_snapshot  TEXT    NOT NULL,
    rows_processed   INTEGER NOT NULL DEFAULT 0,
    error_message    TEXT,
    started_at       TEXT    NOT NULL,
    finished_at      TEXT
);

CREATE INDEX IF NOT EXISTS idx_run_metadata_stage
    ON run_metadata (planning_stage, started_at);
"""

_ALL_DDL = [
    _DDL_PROJECTS,
    _DDL_WASTE_STREAMS,
    _DDL_FACILITIES,
    _DDL_FORECAST_ITEMS,
    _DDL_FACILITY_DISTANCES,
    _DDL_PLAN_DOCUMENTS,
    _DDL_RUN_METADATA,
]

ALL_TABLE_NAMES = [
    "projects",
    "waste_streams",
    "facilities",
    "forecast_items",
    "facility_distances",
    "plan_documents",
    "run_metadata",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index on ``conn``. Safe to call repeatedly.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    logger.debug("Applying schema to database...")
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()
    logger.info("Schema applied: %d tables verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
