"""
Tests for the allocation synchroniser (allocation/synchronizer.py).

What we test
------------
1. allocate_item(): waste qty/mass, factor precedence, bucket assignment.
2. summarise_allocation(): per-stream tonnes and bucket counts.
3. ensure_stream_in_document() / apply_forecast_totals(): additive stream
   list and recompute-by-sum of ``forecast_qty``.
4. sync_allocation(): end-to-end against in-memory stores, idempotence,
   streams added to the plan, and store errors propagating.
"""

from __future__ import annotations

import sqlite3

import pytest

from site_waste_planner.allocation.synchronizer import (
    allocate_item,
    apply_forecast_totals,
    compute_allocation,
    ensure_stream_in_document,
    summarise_allocation,
    sync_allocation,
)
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import default_plan_document, migrate_plan_document
from site_waste_planner.taxonomy.stream_taxonomy import AllocationBucket


# ── Helpers ────────────────────────────────────────────────────────────────────

def _item(item_id: str = "fi-1", **kwargs) -> ForecastLineItem:
    defaults = dict(
        project_id="p1",
        item_name="Steel bar",
        quantity=30,
        excess_percent=10,
        unit="m",
        linear_mass_factor=5,
        allocated_stream_key="Metals",
    )
    defaults.update(kwargs)
    return ForecastLineItem(item_id=item_id, **defaults)


def _index(streams):
    return {s.name.lower(): s for s in streams}


# ── allocate_item ─────────────────────────────────────────────────────────────

class TestAllocateItem:
    def test_linear_item_with_own_factor(self, sample_streams):
        a = allocate_item(_item(), _index(sample_streams))
        assert a.waste_qty == pytest.approx(3.0)
        assert a.waste_kg == pytest.approx(15.0)
        assert a.bucket is AllocationBucket.INCLUDED
        assert a.stream_key == "Metals"

    def test_falls_back_to_stream_linear_factor(self, sample_streams):
        a = allocate_item(_item(linear_mass_factor=None, quantity=100, excess_percent=10), _index(sample_streams))
        # Metals default is 5 kg/m
        assert a.waste_kg == pytest.approx(50.0)

    def test_negative_item_linear_factor_uses_stream_default(self, sample_streams):
        item = _item(linear_mass_factor=-1)
        assert item.linear_mass_factor is None

        a = allocate_item(item, _index(sample_streams))
        assert a.waste_qty == pytest.approx(3.0)
        assert a.waste_kg == pytest.approx(15.0)
        assert a.bucket is AllocationBucket.INCLUDED

    def test_unvalidated_negative_linear_factor_ignored(self, sample_streams):
        item = _item().model_copy(update={"linear_mass_factor": -1.0})
        a = allocate_item(item, _index(sample_streams))
        assert a.waste_kg == pytest.approx(15.0)
        assert a.bucket is AllocationBucket.INCLUDED

    def test_falls_back_to_stream_density(self, sample_streams):
        item = _item(unit="m3", linear_mass_factor=None, quantity=10, excess_percent=50,
                     allocated_stream_key="Mixed C&D")
        a = allocate_item(item, _index(sample_streams))
        assert a.waste_kg == pytest.approx(5 * 1200)

    def test_item_density_overrides_stream_default(self, sample_streams):
        item = _item(unit="m3", density=2000, quantity=1, excess_percent=100,
                     allocated_stream_key="Mixed C&D")
        assert allocate_item(item, _index(sample_streams)).waste_kg == pytest.approx(2000)

    def test_stream_key_matches_case_insensitively(self, sample_streams):
        a = allocate_item(_item(allocated_stream_key="metals"), _index(sample_streams))
        assert a.stream_key == "Metals"
        assert a.bucket is AllocationBucket.INCLUDED

    def test_no_stream_is_unallocated(self, sample_streams):
        a = allocate_item(_item(allocated_stream_key=None), _index(sample_streams))
        assert a.bucket is AllocationBucket.UNALLOCATED
        assert a.stream_key is None
        assert a.waste_kg == pytest.approx(15.0)

    def test_unknown_stream_is_unallocated(self, sample_streams):
        a = allocate_item(_item(allocated_stream_key="Unobtainium"), _index(sample_streams))
        assert a.bucket is AllocationBucket.UNALLOCATED

    def test_unconvertible_unit_needs_conversion(self, sample_streams):
        item = _item(unit="m3", linear_mass_factor=None, allocated_stream_key="Plasterboard / GIB")
        a = allocate_item(item, _index(sample_streams))
        assert a.bucket is AllocationBucket.CONVERSION_REQUIRED
        assert a.waste_kg is None
        assert a.waste_qty == pytest.approx(3.0)


# ── summarise_allocation ──────────────────────────────────────────────────────

class TestSummariseAllocation:
    def test_totals_and_counts(self, sample_streams):
        items = [
            _item("a"),
            _item("b", unit="tonne", quantity=2, excess_percent=50, allocated_stream_key="Mixed C&D"),
            _item("c", allocated_stream_key=None),
            _item("d", unit="m3", linear_mass_factor=None, allocated_stream_key="Plasterboard / GIB"),
        ]
        result = summarise_allocation(compute_allocation(items, sample_streams))

        assert result.totals_by_stream() == {
            "Metals": pytest.approx(0.015),
            "Mixed C&D": pytest.approx(1.0),
        }
        assert result.included_count == 2
        assert result.unallocated_count == 1
        assert result.conversion_required_count == 1
        assert result.item_count == 4

    def test_totals_sorted_by_stream_key(self, sample_streams):
        items = [
            _item("a", allocated_stream_key="Timber (untreated)", unit="kg"),
            _item("b"),
        ]
        result = summarise_allocation(compute_allocation(items, sample_streams))
        assert [t.stream_key for t in result.stream_totals] == ["Metals", "Timber (untreated)"]

    def test_empty(self):
        result = summarise_allocation([])
        assert result.stream_totals == []
        assert result.total_tonnes == 0.0


# ── Document updates ──────────────────────────────────────────────────────────

class TestDocumentUpdates:
    def test_ensure_stream_adds_stream_and_template_plan(self):
        doc = ensure_stream_in_document(default_plan_document("p1"), "Metals")
        assert doc.waste_streams == ["Mixed C&D", "Metals"]
        plan = doc.plan_for("Metals")
        assert plan is not None
        assert plan.intended_outcomes == ["Recycle"]

    def test_ensure_stream_is_noop_when_present(self):
        doc = default_plan_document("p1")
        assert ensure_stream_in_document(doc, "Mixed C&D") is doc

    def test_apply_totals_overwrites_and_clears(self):
        doc = migrate_plan_document({
            "schema_version": 2,
            "waste_streams": ["Mixed C&D", "Metals"],
            "waste_stream_plans": [
                {"category": "Mixed C&D", "forecast_qty": 99, "manual_qty_tonnes": 4},
                {"category": "Metals", "forecast_qty": 1},
            ],
        })
        doc = apply_forecast_totals(doc, {"Metals": 0.25})

        mixed = doc.plan_for("Mixed C&D")
        assert mixed.forecast_qty is None
        assert mixed.manual_qty_tonnes == 4
        assert doc.plan_for("Metals").forecast_qty == pytest.approx(0.25)
        assert doc.plan_for("Metals").forecast_unit == "tonne"


# ── sync_allocation ───────────────────────────────────────────────────────────

class TestSyncAllocation:
    def _stores(self, fakes, sample_streams, items=None, document=None, fail=False):
        items_store = fakes.ItemStore(items if items is not None else [_item()])
        catalog = fakes.Catalog(sample_streams)
        plans = fakes.PlanStore({"p1": document} if document else None, fail_on_write=fail)
        return items_store, catalog, plans

    def test_writes_computed_fields_and_forecast_qty(self, fakes, sample_streams):
        items, catalog, plans = self._stores(fakes, sample_streams)
        result = sync_allocation("p1", items=items, catalog=catalog, plans=plans)

        stored = items.items["fi-1"]
        assert stored.computed_waste_qty == pytest.approx(3.0)
        assert stored.computed_waste_kg == pytest.approx(15.0)

        doc = migrate_plan_document(plans.read("p1"))
        assert doc.plan_for("Metals").forecast_qty == pytest.approx(0.015)
        assert result.included_count == 1

    def test_adds_missing_stream_to_plan(self, fakes, sample_streams):
        items, catalog, plans = self._stores(fakes, sample_streams)
        result = sync_allocation("p1", items=items, catalog=catalog, plans=plans)

        assert result.added_streams == ["Metals"]
        doc = migrate_plan_document(plans.read("p1"))
        assert doc.waste_streams == ["Mixed C&D", "Metals"]

    def test_never_removes_existing_streams(self, fakes, sample_streams):
        document = {
            "schema_version": 2,
            "waste_streams": ["Mixed C&D", "Glass"],
            "waste_stream_plans": [{"category": "Glass", "intended_outcomes": ["Landfill"]}],
        }
        items, catalog, plans = self._stores(fakes, sample_streams, document=document)
        sync_allocation("p1", items=items, catalog=catalog, plans=plans)

        doc = migrate_plan_document(plans.read("p1"))
        assert "Glass" in doc.waste_streams
        assert doc.plan_for("Glass").intended_outcomes == ["Landfill"]

    def test_idempotent(self, fakes, sample_streams):
        items, catalog, plans = self._stores(fakes, sample_streams, items=[
            _item("a"),
            _item("b", allocated_stream_key=None),
            _item("c", unit="tonne", quantity=1, excess_percent=20, allocated_stream_key="Mixed C&D"),
        ])
        first = sync_allocation("p1", items=items, catalog=catalog, plans=plans)
        doc_after_first = plans.read("p1")
        items_after_first = dict(items.items)

        second = sync_allocation("p1", items=items, catalog=catalog, plans=plans)

        assert plans.read("p1") == doc_after_first
        assert items.items == items_after_first
        assert second.stream_totals == first.stream_totals
        assert second.added_streams == []

    def test_plan_write_failure_propagates(self, fakes, sample_streams):
        items, catalog, plans = self._stores(fakes, sample_streams, fail=True)
        with pytest.raises(sqlite3.OperationalError):
            sync_allocation("p1", items=items, catalog=catalog, plans=plans)
        assert plans.read("p1") is None

    def test_items_from_other_projects_ignored(self, fakes, sample_streams):
        items, catalog, plans = self._stores(fakes, sample_streams, items=[
            _item("a"),
            _item("b", project_id="p2"),
        ])
        result = sync_allocation("p1", items=items, catalog=catalog, plans=plans)
        assert result.item_count == 1
        assert items.updates == ["a"]
