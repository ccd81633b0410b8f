"""
Waste strategy output: per-stream plans, summary, narrative.

Everything here is recomputed from scratch on each strategy build.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from site_waste_planner.models.recommendation import Recommendation
from site_waste_planner.taxonomy.stream_taxonomy import (
    DestinationMode,
    HandlingMode,
    OutcomeClass,
    RecommendedHandling,
    Significance,
    StreamActionType,
)


class StreamAction(BaseModel):
    """Suggested next step for one stream."""

    model_config = ConfigDict(frozen=True)

    type: StreamActionType
    label: str
    impact_hint: str


class StreamPlan(BaseModel):
    """Computed plan for one waste stream.

    ``total_tonnes`` is always ``manual_tonnes + forecast_tonnes``; both are
    non-negative.
    """

    model_config = ConfigDict(frozen=True)

    stream_id: str
    stream_name: str
    manual_tonnes: float
    forecast_tonnes: float
    total_tonnes: float
    significance: Significance
    handling_mode: HandlingMode
    recommended_handling: RecommendedHandling
    assigned_facility_id: Optional[str] = None
    destination_mode: DestinationMode = DestinationMode.FACILITY
    custom_destination_name: Optional[str] = None
    custom_destination_address: Optional[str] = None
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    partner_id: Optional[str] = None
    recommended_facility_id: Optional[str] = None
    recommended_facility_name: Optional[str] = None
    recommended_partner_id: Optional[str] = None
    recommended_partner_name: Optional[str] = None
    intended_outcome: OutcomeClass
    intended_outcome_display: str
    rationale: list[str] = []
    actions: list[StreamAction] = []

    @property
    def is_diverted(self) -> bool:
        return self.intended_outcome in (OutcomeClass.RECYCLE, OutcomeClass.REUSE)


class StrategySummary(BaseModel):
    """Plan-wide headline numbers.

    The three percentages partition 100 % of plan mass whenever
    ``total_estimated_tonnes > 0``; all are 0 otherwise.
    """

    model_config = ConfigDict(frozen=True)

    total_estimated_tonnes: float
    estimated_diversion_percent: float
    estimated_landfill_percent: float
    estimated_unknown_percent: float
    streams_count: int
    facilities_utilised_count: int


class StrategyNarrative(BaseModel):
    """Text blocks for the written plan."""

    model_config = ConfigDict(frozen=True)

    summary_paragraph: str
    methodology_paragraph: str
    key_assumptions: list[str]
    facility_plan_paragraph: str
    top_recommendations_bullets: list[str]
    major_drivers_paragraph: str


class ConversionFallbackInfo(BaseModel):
    """Streams whose manual quantity was converted with built-in defaults.

    A stream is listed when its manual quantity is in a non-mass unit and the
    stream catalog carries no conversion factor for it.
    """

    model_config = ConfigDict(frozen=True)

    used_fallback: bool = False
    fallback_count: int = 0
    missing_keys: list[str] = []


class StrategyResult(BaseModel):
    """Complete output of one strategy build."""

    model_config = ConfigDict(frozen=True)

    project_id: Optional[str] = None
    summary: StrategySummary
    stream_plans: list[StreamPlan]
    recommendations: list[Recommendation]
    narrative: StrategyNarrative
    conversion_fallback: ConversionFallbackInfo = ConversionFallbackInfo()
