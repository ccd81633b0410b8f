"""
Tests for the facility optimiser (optimiser/facility_optimiser.py).

What we test
------------
1. Degenerate cases: no eligible facility, a single eligible facility.
2. Recommendation with alternates, cost/carbon estimates and reasons.
3. Missing distances produce the geocode hint.
4. eligible_candidates(): region widening and distance enrichment.
5. run_optimiser(): one result per input stream, in input order.
"""

from __future__ import annotations

import pytest

from site_waste_planner.interfaces import DistanceMap
from site_waste_planner.models.facility import DistanceEntry, FacilityCandidate
from site_waste_planner.models.optimiser import OptimiserWeights, StreamDemand
from site_waste_planner.optimiser.facility_optimiser import (
    CLOSEST,
    DISTANCE_UNAVAILABLE,
    MISSING_GEOCODE,
    NO_ELIGIBLE,
    ONLY_ELIGIBLE,
    eligible_candidates,
    optimise_stream,
    rank_by_distance,
    run_optimiser,
)


def _fac(fid: str, **kwargs) -> FacilityCandidate:
    return FacilityCandidate(facility_id=fid, name=kwargs.pop("name", fid), **kwargs)


def _demand(tonnes: float = 2.0, name: str = "Metals") -> StreamDemand:
    return StreamDemand(stream_name=name, planned_tonnes=tonnes)


class TestOptimiseStream:
    def test_no_eligible_facilities(self):
        r = optimise_stream(_demand(), [], OptimiserWeights())
        assert not r.has_recommendation
        assert r.score == 0.0
        assert r.reason.primary == NO_ELIGIBLE
        assert r.reason.eligibility_count == 0

    def test_single_facility_selected_regardless_of_weights(self):
        r = optimise_stream(
            _demand(),
            [_fac("only", distance_km=40, duration_min=35, diversion_rating=5)],
            OptimiserWeights(distance=0, diversion=10),
        )
        assert r.recommended_facility_id == "only"
        assert r.reason.primary == ONLY_ELIGIBLE
        assert r.reason.rank_by_distance == 1
        assert "Distance: 40 km" in r.reason.breakdown
        assert "Drive: ~35 min" in r.reason.breakdown
        assert r.alternatives == []

    def test_closest_with_alternates(self):
        candidates = [_fac(f"f{i}", distance_km=float(d)) for i, d in enumerate([9, 3, 15, 6, 20])]
        r = optimise_stream(_demand(), candidates, OptimiserWeights())

        assert r.recommended_facility_id == "f1"
        assert r.reason.primary == CLOSEST
        assert [a.facility_id for a in r.alternatives] == ["f3", "f0", "f2"]
        assert [e.facility_id for e in r.eligible_facilities] == ["f0", "f1", "f2", "f3", "f4"]

    def test_alternatives_count_respected(self):
        candidates = [_fac(f"f{i}", distance_km=float(i + 1)) for i in range(4)]
        r = optimise_stream(_demand(), candidates, OptimiserWeights(), alternatives_count=1)
        assert len(r.alternatives) == 1

    def test_diversion_weight_can_beat_distance(self):
        candidates = [
            _fac("near", distance_km=5, diversion_rating=40),
            _fac("green", distance_km=20, diversion_rating=95),
        ]
        r = optimise_stream(_demand(), candidates, OptimiserWeights(distance=0, diversion=1))
        assert r.recommended_facility_id == "green"
        assert r.reason.primary == "Ranked #2 of 2 by distance"
        assert r.reason.rank_by_distance == 2

    def test_cost_and_carbon_estimates(self):
        candidates = [
            _fac("a", distance_km=1, cost_per_tonne=150, carbon_per_tonne=40),
            _fac("b", distance_km=2),
        ]
        r = optimise_stream(_demand(tonnes=4), candidates, OptimiserWeights())
        assert r.estimated_cost == pytest.approx(600)
        assert r.estimated_carbon == pytest.approx(0.16)
        assert "Est. cost: $600" in r.reason.breakdown
        assert "Est. carbon: 0.16 tCO2e" in r.reason.breakdown

    def test_zero_tonnes_has_no_estimates(self):
        candidates = [_fac("a", distance_km=1, cost_per_tonne=150), _fac("b", distance_km=2)]
        r = optimise_stream(_demand(tonnes=0), candidates, OptimiserWeights())
        assert r.estimated_cost is None
        assert r.estimated_carbon is None

    def test_missing_distances_flagged(self):
        candidates = [_fac("a", diversion_rating=80), _fac("b", diversion_rating=20)]
        r = optimise_stream(_demand(), candidates, OptimiserWeights(diversion=1))
        assert r.recommended_facility_id == "a"
        assert r.reason.primary == DISTANCE_UNAVAILABLE
        assert r.reason.missing_geocode is True
        assert MISSING_GEOCODE in r.reason.breakdown

    def test_cost_weight_without_cost_data_noted(self):
        candidates = [_fac("a", distance_km=1), _fac("b", distance_km=2)]
        r = optimise_stream(_demand(), candidates, OptimiserWeights(cost=1))
        assert "Cost data unavailable for this facility." in r.reason.breakdown


class TestRankByDistance:
    def test_missing_distance_ranks_last(self):
        candidates = [_fac("x"), _fac("y", distance_km=8), _fac("z", distance_km=2)]
        assert rank_by_distance(candidates, "z") == 1
        assert rank_by_distance(candidates, "x") == 3


class TestEligibleCandidates:
    def test_attaches_cached_distance(self, fakes, sample_facilities):
        directory = fakes.Directory(sample_facilities)
        distances = DistanceMap([DistanceEntry.from_raw("GC-EAST", 12400, 960)])
        found = eligible_candidates("Metals", directory, distances, region="AKL")

        by_id = {c.facility_id: c for c in found}
        assert set(by_id) == {"gc-east", "metro-metals"}
        assert by_id["gc-east"].distance_km == pytest.approx(12.4)
        assert by_id["gc-east"].duration_min == pytest.approx(16.0)
        assert by_id["metro-metals"].distance_km is None

    def test_widens_when_region_has_nothing(self, fakes, sample_facilities):
        directory = fakes.Directory([f for f in sample_facilities if f.region == "WKO"])
        found = eligible_candidates("Timber (untreated)", directory, DistanceMap(), region="AKL")
        assert [c.facility_id for c in found] == ["wk-timber"]


class TestRunOptimiser:
    def test_one_result_per_stream_in_order(self):
        demands = [_demand(name="Metals"), _demand(name="Glass"), _demand(name="Mixed C&D")]
        eligible = {
            "Metals": [_fac("m", distance_km=3)],
            "Mixed C&D": [_fac("x", distance_km=4), _fac("y", distance_km=1)],
        }
        results = run_optimiser(demands, eligible)

        assert [r.stream_name for r in results] == ["Metals", "Glass", "Mixed C&D"]
        assert results[0].recommended_facility_id == "m"
        assert results[1].reason.primary == NO_ELIGIBLE
        assert results[2].recommended_facility_id == "y"

    def test_calls_are_independent(self):
        eligible = {"Metals": [_fac("a", distance_km=3), _fac("b", distance_km=1)]}
        first = run_optimiser([_demand()], eligible)
        second = run_optimiser([_demand()], eligible)
        assert first == second
