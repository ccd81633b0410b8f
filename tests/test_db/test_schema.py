"""Tests for schema creation (db/schema.py)."""

from __future__ import annotations

import sqlite3

import pytest

from site_waste_planner.db.schema import ALL_TABLE_NAMES, apply_schema, get_existing_tables


def test_all_tables_created(in_memory_db):
    assert get_existing_tables(in_memory_db) == sorted(ALL_TABLE_NAMES)


def test_apply_schema_idempotent(in_memory_db):
    apply_schema(in_memory_db)
    apply_schema(in_memory_db)
    assert get_existing_tables(in_memory_db) == sorted(ALL_TABLE_NAMES)


def test_forecast_items_require_project(in_memory_db):
    with pytest.raises(sqlite3.IntegrityError):
        in_memory_db.execute(
            "INSERT INTO forecast_items (item_id, project_id) VALUES ('fi-1', 'missing');"
        )


def test_stream_names_unique(in_memory_db):
    in_memory_db.execute("INSERT INTO waste_streams (name) VALUES ('Metals');")
    with pytest.raises(sqlite3.IntegrityError):
        in_memory_db.execute("INSERT INTO waste_streams (name) VALUES ('Metals');")
