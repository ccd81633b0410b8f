"""
Tests for the project bundle loader (catalog/seed_loader.py).

What we test
------------
1. The committed sample bundle loads with the expected section counts.
2. Re-loading is an upsert (no duplicates).
3. Distances in metres/seconds are normalised to km/min.
4. The legacy plan document is stored verbatim and migrates on read.
5. Structural validation errors.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from site_waste_planner.catalog.seed_loader import load_bundle, load_project_bundle, validate_bundle
from site_waste_planner.db.repositories.distance_repo import DistanceRepository
from site_waste_planner.db.repositories.forecast_item_repo import ForecastItemRepository
from site_waste_planner.db.repositories.plan_document_repo import PlanDocumentRepository
from site_waste_planner.db.repositories.stream_repo import StreamRepository
from site_waste_planner.models.plan_document import migrate_plan_document

SAMPLE_BUNDLE = Path(__file__).parents[2] / "config" / "projects" / "sample_project.json"


def _bundle(**sections) -> dict:
    bundle = {"project": {"project_id": "p1", "region": "AKL"}}
    bundle.update(sections)
    return bundle


class TestSampleBundle:
    def test_counts(self, in_memory_db):
        counts = load_project_bundle(in_memory_db, SAMPLE_BUNDLE)
        assert counts == {
            "projects": 1,
            "streams": 6,
            "facilities": 4,
            "forecast_items": 7,
            "distances": 4,
            "plan_documents": 1,
        }

    def test_reload_is_upsert(self, in_memory_db):
        load_project_bundle(in_memory_db, SAMPLE_BUNDLE)
        load_project_bundle(in_memory_db, SAMPLE_BUNDLE)
        assert len(ForecastItemRepository(in_memory_db).list_items("demo-house")) == 7
        assert len(StreamRepository(in_memory_db).active_streams()) == 6

    def test_distances_normalised(self, in_memory_db):
        load_project_bundle(in_memory_db, SAMPLE_BUNDLE)
        entry = DistanceRepository(in_memory_db).for_project("demo-house").get("gc-east")
        assert entry.distance_km == pytest.approx(12.4)
        assert entry.duration_min == pytest.approx(16.0)

    def test_legacy_plan_document(self, in_memory_db):
        load_project_bundle(in_memory_db, SAMPLE_BUNDLE)
        raw = PlanDocumentRepository(in_memory_db).read("demo-house")
        assert "schema_version" not in raw

        doc = migrate_plan_document(raw, project_id="demo-house")
        mixed = doc.plan_for("Mixed C&D")
        assert mixed.intended_outcomes == ["Landfill"]
        assert mixed.estimated_qty == 12


class TestBundleValidation:
    def test_missing_project_id(self):
        with pytest.raises(ValueError, match="project.project_id"):
            validate_bundle({"project": {}})

    def test_duplicate_facility(self):
        facilities = [{"facility_id": "f", "name": "A"}, {"facility_id": "f", "name": "B"}]
        with pytest.raises(ValueError, match="Duplicate facility"):
            validate_bundle(_bundle(facilities=facilities))

    def test_item_for_other_project(self):
        with pytest.raises(ValueError, match="belongs to project 'p2'"):
            validate_bundle(_bundle(forecast_items=[{"item_id": "i", "project_id": "p2"}]))

    def test_items_inherit_project(self, in_memory_db):
        load_bundle(in_memory_db, _bundle(forecast_items=[{"item_id": "i", "quantity": 1}]))
        assert ForecastItemRepository(in_memory_db).get_item("i").project_id == "p1"

    def test_km_distances_accepted(self, in_memory_db):
        load_bundle(in_memory_db, _bundle(distances=[{"facility_id": "f", "distance_km": 7.5, "duration_min": 9}]))
        assert DistanceRepository(in_memory_db).for_project("p1").get("f").distance_km == pytest.approx(7.5)

    def test_missing_file(self, in_memory_db, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_project_bundle(in_memory_db, tmp_path / "nope.json")

    def test_non_object_file(self, in_memory_db, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            load_project_bundle(in_memory_db, path)
