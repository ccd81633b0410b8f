"""
Facility optimiser inputs and outputs.

``OptimiserWeights`` coerces negative or non-finite weights to 0 instead of
rejecting them; a weight of 0 switches its dimension off.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from site_waste_planner.utils.numbers import non_negative_or_zero


class OptimiserWeights(BaseModel):
    """Relative importance of each scoring dimension."""

    model_config = ConfigDict(frozen=True)

    distance: float = 1.0
    cost: float = 0.0
    carbon: float = 0.0
    diversion: float = 0.0

    @field_validator("distance", "cost", "carbon", "diversion", mode="before")
    @classmethod
    def coerce_weight(cls, v: Any) -> float:
        return non_negative_or_zero(v)


class StreamDemand(BaseModel):
    """A stream to place and the tonnage planned for it."""

    model_config = ConfigDict(frozen=True)

    stream_name: str
    planned_tonnes: float = 0.0

    @field_validator("planned_tonnes", mode="before")
    @classmethod
    def coerce_tonnes(cls, v: Any) -> float:
        return non_negative_or_zero(v)


class FacilityOption(BaseModel):
    """Compact facility reference used for alternates and override pickers."""

    model_config = ConfigDict(frozen=True)

    facility_id: str
    facility_name: str
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None


class OptimiserReason(BaseModel):
    """Explainable rationale for a facility choice.

    Attributes:
        primary: One-sentence headline.
        breakdown: Ordered supporting bullets.
        eligibility_count: Number of eligible facilities for the stream.
        rank_by_distance: 1-based distance rank of the chosen facility.
        missing_geocode: Distance ranking was impossible for lack of geocodes.
    """

    model_config = ConfigDict(frozen=True)

    primary: str
    breakdown: list[str] = []
    eligibility_count: int = 0
    rank_by_distance: Optional[int] = None
    missing_geocode: bool = False


class OptimiserResultItem(BaseModel):
    """Facility recommendation for one stream."""

    model_config = ConfigDict(frozen=True)

    stream_name: str
    planned_tonnes: float
    recommended_facility_id: Optional[str] = None
    recommended_facility_name: Optional[str] = None
    score: float = 0.0
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    estimated_cost: Optional[float] = None
    estimated_carbon: Optional[float] = None
    alternatives: list[FacilityOption] = []
    reason: OptimiserReason
    eligible_facilities: list[FacilityOption] = []

    @property
    def has_recommendation(self) -> bool:
        return self.recommended_facility_id is not None
