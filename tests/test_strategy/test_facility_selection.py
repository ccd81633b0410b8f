"""
Tests for stream-plan facility selection (strategy/facility_selection.py).

What we test
------------
1. Phase 1 keeps a still-valid assigned facility.
2. Phase 2 searches by partner + region, widens to region, and ranks by
   diversion rating, cached distance, then name.
3. effective_distance() precedence: override, then cache, then None.
"""

from __future__ import annotations

import pytest

from site_waste_planner.interfaces import DistanceMap
from site_waste_planner.models.facility import DistanceEntry, FacilityCandidate
from site_waste_planner.strategy.facility_selection import (
    effective_distance,
    pick_best_facility,
    search_best_facility,
    validate_existing_assignment,
)


class TestValidateExisting:
    def test_keeps_accepting_facility(self, fakes, sample_facilities):
        directory = fakes.Directory(sample_facilities)
        found = validate_existing_assignment("Metals", "gc-east", directory)
        assert found is not None and found.facility_id == "gc-east"

    def test_rejects_facility_not_accepting_stream(self, fakes, sample_facilities):
        directory = fakes.Directory(sample_facilities)
        assert validate_existing_assignment("Metals", "south-landfill", directory) is None

    def test_rejects_unknown_facility(self, fakes, sample_facilities):
        assert validate_existing_assignment("Metals", "gone", fakes.Directory(sample_facilities)) is None

    def test_no_assignment(self, fakes, sample_facilities):
        assert validate_existing_assignment("Metals", None, fakes.Directory(sample_facilities)) is None


class TestPickBestFacility:
    def test_existing_assignment_wins_over_better_rating(self, fakes, sample_facilities):
        pick = pick_best_facility("Metals", fakes.Directory(sample_facilities), existing_facility_id="gc-east")
        assert pick.source == "existing"
        assert pick.facility.facility_id == "gc-east"

    def test_invalid_assignment_falls_through_to_search(self, fakes, sample_facilities):
        pick = pick_best_facility(
            "Metals", fakes.Directory(sample_facilities), existing_facility_id="south-landfill", region="AKL",
        )
        assert pick.source == "search"
        assert pick.facility.facility_id == "metro-metals"

    def test_partner_filter(self, fakes, sample_facilities):
        pick = pick_best_facility("Metals", fakes.Directory(sample_facilities), region="AKL", partner_id="greencycle")
        assert pick.facility.facility_id == "gc-east"
        assert pick.partner_id == "greencycle"

    def test_widens_to_region_when_partner_has_none(self, fakes, sample_facilities):
        pick = pick_best_facility("Metals", fakes.Directory(sample_facilities), region="AKL", partner_id="nobody")
        assert pick.facility.facility_id == "metro-metals"

    def test_nothing_accepts_stream(self, fakes, sample_facilities):
        pick = pick_best_facility("Glass", fakes.Directory(sample_facilities), region="AKL")
        assert pick.facility is None
        assert pick.source == "none"
        assert pick.partner_id is None


class TestSearchOrdering:
    def _twins(self) -> list[FacilityCandidate]:
        return [
            FacilityCandidate(facility_id="b", name="Bravo", accepted_streams=("Glass",), diversion_rating=80),
            FacilityCandidate(facility_id="a", name="Alpha", accepted_streams=("Glass",), diversion_rating=80),
            FacilityCandidate(facility_id="c", name="Charlie", accepted_streams=("Glass",)),
        ]

    def test_distance_breaks_rating_tie(self, fakes):
        distances = DistanceMap([DistanceEntry(facility_id="b", distance_km=3)])
        found = search_best_facility("Glass", fakes.Directory(self._twins()), distances=distances)
        assert found.facility_id == "b"

    def test_name_breaks_remaining_tie(self, fakes):
        found = search_best_facility("Glass", fakes.Directory(self._twins()))
        assert found.facility_id == "a"


class TestEffectiveDistance:
    _CACHE = DistanceMap([DistanceEntry(facility_id="gc-east", distance_km=12.4, duration_min=16)])

    def test_override_wins(self):
        assert effective_distance(5.0, 7.0, "gc-east", self._CACHE) == (5.0, 7.0)

    def test_cache_fills_missing_override(self):
        km, minutes = effective_distance(None, None, "gc-east", self._CACHE)
        assert km == pytest.approx(12.4)
        assert minutes == pytest.approx(16)

    def test_partial_override(self):
        assert effective_distance(3.0, None, "gc-east", self._CACHE) == (3.0, 16.0)

    def test_nothing_known(self):
        assert effective_distance(None, None, "metro-metals", self._CACHE) == (None, None)
        assert effective_distance(None, None, None, None) == (None, None)
