"""
Approximate cost and carbon impact ranges.

Per tonne diverted from landfill to recycling:

  cost saving   = [max(0, landfill_avg - recycling_max), landfill_avg - recycling_min]
  carbon saving = [0.5 × landfill_ef + displacement_min, 1.2 × landfill_ef + displacement_max]

With the default constants that is 50-180 per tonne and 0.25-0.96 tCO2e per
tonne. Results are always (low, high) ranges.
"""

from __future__ import annotations

from site_waste_planner.config import ImpactConfig


def cost_saving_per_tonne(impact: ImpactConfig) -> tuple[float, float]:
    landfill_avg = (impact.landfill_cost_min + impact.landfill_cost_max) / 2
    low = max(0.0, landfill_avg - impact.recycling_cost_max)
    high = landfill_avg - impact.recycling_cost_min
    return float(round(low)), float(round(high))


def carbon_saving_per_tonne(impact: ImpactConfig) -> tuple[float, float]:
    ef = impact.landfill_emission_factor
    low = ef * 0.5 + impact.recycling_displacement_min
    high = ef * 1.2 + impact.recycling_displacement_max
    return round(low, 2), round(high, 2)


def impact_ranges(
    tonnes: float,
    impact: ImpactConfig,
) -> tuple[tuple[float, float], tuple[float, float]]:
    """(cost range, carbon range) for diverting ``tonnes`` from landfill."""
    cost_low, cost_high = cost_saving_per_tonne(impact)
    carbon_low, carbon_high = carbon_saving_per_tonne(impact)
    cost = (float(round(tonnes * cost_low)), float(round(tonnes * cost_high)))
    carbon = (round(tonnes * carbon_low, 2), round(tonnes * carbon_high, 2))
    return cost, carbon
