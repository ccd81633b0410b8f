"""
Tests for narrative text (strategy/narrative.py).

What we test
------------
1. Summary paragraph carries the headline numbers.
2. Facility plan paragraph lists recommended facilities or the fallback.
3. Major drivers mention diverted streams and a dominant catch-all stream.
4. build_narrative(): assumptions, methodology thresholds, bullet limit.
"""

from __future__ import annotations

from typing import Optional

from site_waste_planner.config import PlanningConfig
from site_waste_planner.models.recommendation import Recommendation
from site_waste_planner.models.strategy import StrategySummary, StreamPlan
from site_waste_planner.strategy.narrative import (
    NO_FACILITIES,
    UNKNOWN_OUTCOME_ASSUMPTION,
    build_narrative,
    facility_plan_paragraph,
    major_drivers_paragraph,
    summary_paragraph,
)
from site_waste_planner.taxonomy.stream_taxonomy import (
    Confidence,
    HandlingMode,
    OutcomeClass,
    Priority,
    RecommendationCategory,
    RecommendedHandling,
    Significance,
)


def _summary(total: float = 15.0, diversion: float = 60.0, landfill: float = 40.0, unknown: float = 0.0) -> StrategySummary:
    return StrategySummary(
        total_estimated_tonnes=total,
        estimated_diversion_percent=diversion,
        estimated_landfill_percent=landfill,
        estimated_unknown_percent=unknown,
        streams_count=2,
        facilities_utilised_count=1,
    )


def _stream(name: str, tonnes: float, outcome: OutcomeClass, facility_name: Optional[str] = None) -> StreamPlan:
    return StreamPlan(
        stream_id=name.lower(),
        stream_name=name,
        manual_tonnes=tonnes,
        forecast_tonnes=0.0,
        total_tonnes=tonnes,
        significance=Significance.MAJOR,
        handling_mode=HandlingMode.MIXED,
        recommended_handling=RecommendedHandling.MIXED,
        recommended_facility_name=facility_name,
        intended_outcome=outcome,
        intended_outcome_display=outcome.value,
    )


def _rec(n: int) -> Recommendation:
    return Recommendation(
        id=f"r-{n}",
        title=f"Recommendation {n}",
        description="",
        priority=Priority.MEDIUM,
        confidence=Confidence.MEDIUM,
        category=RecommendationCategory.SITE_LOGISTICS,
    )


def _streams() -> list[StreamPlan]:
    return [
        _stream("Metals", 9, OutcomeClass.RECYCLE, "Metro Metals"),
        _stream("Mixed C&D", 6, OutcomeClass.LANDFILL),
    ]


class TestParagraphs:
    def test_summary_numbers(self):
        text = summary_paragraph(_summary())
        assert "2 stream(s)" in text
        assert "15.0 tonnes" in text
        assert "diversion is 60%" in text
        assert "40% to landfill" in text

    def test_facility_plan(self):
        assert facility_plan_paragraph(_streams()) == "Facility plan: Metals: Metro Metals."

    def test_facility_plan_without_facilities(self):
        assert facility_plan_paragraph([_stream("Mixed C&D", 6, OutcomeClass.LANDFILL)]) == NO_FACILITIES

    def test_major_drivers_catch_all_dominant(self):
        text = major_drivers_paragraph(_summary(), _streams(), "Mixed C&D")
        assert "(e.g. Metals)" in text
        assert "Mixed C&D represents 40% of total waste" in text

    def test_major_drivers_default_text(self):
        text = major_drivers_paragraph(_summary(total=0, diversion=0, landfill=0), [], "Mixed C&D")
        assert text.startswith("Key drivers will depend on stream mix")


class TestBuildNarrative:
    def test_assumptions_without_unknown(self):
        narrative = build_narrative(_summary(), _streams(), [], PlanningConfig())
        assert len(narrative.key_assumptions) == 2
        assert UNKNOWN_OUTCOME_ASSUMPTION not in narrative.key_assumptions

    def test_unknown_assumption_added(self):
        streams = _streams() + [_stream("Glass", 3, OutcomeClass.UNKNOWN)]
        narrative = build_narrative(_summary(diversion=50, landfill=30, unknown=20), streams, [], PlanningConfig())
        assert narrative.key_assumptions[-1] == UNKNOWN_OUTCOME_ASSUMPTION

    def test_unknown_assumption_for_zero_tonnage_stream(self):
        streams = _streams() + [_stream("Glass", 0, OutcomeClass.UNKNOWN)]
        narrative = build_narrative(_summary(), streams, [], PlanningConfig())
        assert UNKNOWN_OUTCOME_ASSUMPTION in narrative.key_assumptions

    def test_methodology_uses_configured_thresholds(self):
        planning = PlanningConfig(major_stream_tonnes=2.5, medium_stream_tonnes=0.5)
        narrative = build_narrative(_summary(), _streams(), [], planning)
        assert "major ≥2.5 t" in narrative.methodology_paragraph
        assert "minor <0.5 t" in narrative.methodology_paragraph

    def test_bullets_limited(self):
        recs = [_rec(n) for n in range(10)]
        narrative = build_narrative(_summary(), _streams(), recs, PlanningConfig(recommendation_display_limit=3))
        assert narrative.top_recommendations_bullets == ["Recommendation 0", "Recommendation 1", "Recommendation 2"]
