"""
Strategy recommendations.

A ``Recommendation`` is generated fresh on every strategy build and never
persisted by the planning core. Cost and carbon impacts are always ranges
(low, high), never point estimates.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from site_waste_planner.taxonomy.stream_taxonomy import (
    ApplyActionType,
    Confidence,
    Priority,
    RecommendationCategory,
)


class EstimatedImpact(BaseModel):
    """Structured impact block.

    Attributes:
        tonnes_diverted: Tonnes the recommendation would move out of landfill
            or the catch-all stream.
        diversion_delta_percent: Percentage-point change in diversion.
        cost_savings_range: (low, high) saving in the configured currency.
        carbon_savings_range: (low, high) saving in tCO2e.
        notes: Caveats and disclaimers.
    """

    model_config = ConfigDict(frozen=True)

    tonnes_diverted: Optional[float] = None
    diversion_delta_percent: Optional[float] = None
    cost_savings_range: Optional[tuple[float, float]] = None
    carbon_savings_range: Optional[tuple[float, float]] = None
    notes: list[str] = []


class ApplyAction(BaseModel):
    """One-click plan edit offered alongside a recommendation."""

    model_config = ConfigDict(frozen=True)

    type: ApplyActionType
    payload: dict[str, Any] = {}


class Recommendation(BaseModel):
    """A ranked, explainable planning recommendation."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    priority: Priority
    confidence: Confidence
    category: RecommendationCategory
    triggers: list[str] = []
    estimated_impact: EstimatedImpact = EstimatedImpact()
    implementation_steps: list[str] = []
    apply_action: Optional[ApplyAction] = None

    @property
    def tonnes_impacted(self) -> float:
        return self.estimated_impact.tonnes_diverted or 0.0
