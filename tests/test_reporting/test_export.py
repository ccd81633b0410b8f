"""
Tests for CSV/JSON export helpers (reporting/export.py).

What we test
------------
1. export_to_csv(): header + rows, explicit column order, empty input.
2. export_to_json(): pretty-printed, non-ASCII kept.
3. Flatteners: ranked recommendations, impact ranges as _low/_high pairs,
   joined list fields, optimiser and sync rows.
4. Bundled writers: expected file names under the output directory.
"""

from __future__ import annotations

import csv
import json

import pytest

from site_waste_planner.interfaces import DistanceMap
from site_waste_planner.models.allocation import StreamTotal, SyncResult
from site_waste_planner.models.facility import Project
from site_waste_planner.models.optimiser import OptimiserWeights, StreamDemand
from site_waste_planner.optimiser.facility_optimiser import run_optimiser
from site_waste_planner.reporting.export import (
    LIST_SEPARATOR,
    export_to_csv,
    export_to_json,
    flatten_optimiser_results_for_export,
    flatten_recommendations_for_export,
    flatten_stream_plans_for_export,
    flatten_sync_result_for_export,
    write_optimiser_results,
    write_strategy_result,
)
from site_waste_planner.strategy.builder import build_strategy


# ── Helpers ────────────────────────────────────────────────────────────────────

@pytest.fixture
def strategy(fakes, sample_streams, sample_facilities):
    document = {
        "schema_version": 2,
        "waste_streams": ["Mixed C&D", "Metals"],
        "waste_stream_plans": [
            {"category": "Mixed C&D", "intended_outcomes": ["Landfill"], "manual_qty_tonnes": 5},
            {"category": "Metals", "intended_outcomes": ["Recycle"], "forecast_qty": 9},
        ],
    }
    return build_strategy(
        "p1",
        items=fakes.ItemStore(),
        catalog=fakes.Catalog(sample_streams),
        directory=fakes.Directory(sample_facilities),
        plans=fakes.PlanStore({"p1": document}),
        distances=DistanceMap(),
        projects=fakes.Projects([Project(project_id="p1", region="AKL")]),
    )


@pytest.fixture
def optimiser_results(sample_facilities):
    eligible = {
        "Metals": [f.model_copy(update={"distance_km": d}) for f, d in zip(sample_facilities[:2], (12.4, 21.8))],
    }
    return run_optimiser(
        [StreamDemand(stream_name="Metals", planned_tonnes=2), StreamDemand(stream_name="Glass")],
        eligible,
        OptimiserWeights(),
    )


def _read_csv(path):
    with path.open(encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


# ── Writers ───────────────────────────────────────────────────────────────────

class TestExportToCsv:
    def test_rows_and_header(self, tmp_path):
        path = export_to_csv([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}], tmp_path / "out.csv")
        rows = _read_csv(path)
        assert [r["a"] for r in rows] == ["1", "2"]
        assert list(rows[0].keys()) == ["a", "b"]

    def test_explicit_fieldnames(self, tmp_path):
        path = export_to_csv([{"a": 1, "b": 2, "c": 3}], tmp_path / "out.csv", fieldnames=["c", "a"])
        assert path.read_text(encoding="utf-8").splitlines()[0] == "c,a"

    def test_empty_records(self, tmp_path):
        path = export_to_csv([], tmp_path / "nested" / "empty.csv")
        assert path.exists()
        assert path.read_text(encoding="utf-8") == ""


class TestExportToJson:
    def test_round_trip_and_unicode(self, tmp_path):
        path = export_to_json({"unit": "m³"}, tmp_path / "out.json")
        text = path.read_text(encoding="utf-8")
        assert "m³" in text
        assert json.loads(text) == {"unit": "m³"}


# ── Flatteners ────────────────────────────────────────────────────────────────

class TestFlatteners:
    def test_recommendations_ranked(self, strategy):
        rows = flatten_recommendations_for_export(strategy.recommendations)
        assert [r["rank"] for r in rows] == list(range(1, len(rows) + 1))
        assert rows[0]["id"] == strategy.recommendations[0].id
        for row in rows:
            assert {"cost_saving_low", "cost_saving_high", "carbon_saving_low", "carbon_saving_high"} <= row.keys()
            assert not any(isinstance(v, (list, dict, tuple)) for v in row.values())

    def test_recommendation_steps_joined(self, strategy):
        row = flatten_recommendations_for_export(strategy.recommendations)[0]
        assert row["implementation_steps"] == LIST_SEPARATOR.join(strategy.recommendations[0].implementation_steps)

    def test_stream_plans(self, strategy):
        rows = {r["stream_name"]: r for r in flatten_stream_plans_for_export(strategy.stream_plans)}
        assert rows["Metals"]["forecast_tonnes"] == pytest.approx(9)
        assert rows["Mixed C&D"]["manual_tonnes"] == pytest.approx(5)
        assert rows["Mixed C&D"]["distance_km"] == ""

    def test_optimiser_rows(self, optimiser_results):
        rows = flatten_optimiser_results_for_export(optimiser_results)
        assert rows[0]["facility_id"] == "gc-east"
        assert rows[0]["alternatives"] == "Metro Metals"
        assert rows[0]["eligible_count"] == 2
        assert rows[1]["facility_id"] == ""
        assert rows[1]["distance_km"] == ""

    def test_sync_rows(self):
        result = SyncResult(
            stream_totals=[StreamTotal(stream_key="Metals", total_tonnes=0.123456)],
            unallocated_count=0,
            conversion_required_count=0,
            included_count=1,
        )
        assert flatten_sync_result_for_export(result) == [{"stream_key": "Metals", "total_tonnes": 0.1235}]


# ── Bundled writers ───────────────────────────────────────────────────────────

class TestBundledWriters:
    def test_strategy_files(self, strategy, tmp_path):
        paths = write_strategy_result(strategy, tmp_path)
        assert [p.name for p in paths] == ["strategy_p1.json", "stream_plans_p1.csv", "recommendations_p1.csv"]
        payload = json.loads(paths[0].read_text(encoding="utf-8"))
        assert payload["project_id"] == "p1"
        assert len(_read_csv(paths[1])) == len(strategy.stream_plans)

    def test_optimiser_files(self, optimiser_results, tmp_path):
        paths = write_optimiser_results(optimiser_results, tmp_path / "out", "p1")
        assert [p.name for p in paths] == ["optimiser_p1.json", "optimiser_p1.csv"]
        assert len(json.loads(paths[0].read_text(encoding="utf-8"))) == 2
