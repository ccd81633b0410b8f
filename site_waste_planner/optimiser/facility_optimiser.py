"""
Facility optimiser: recommend a facility per waste stream.

For each stream the optimiser takes the eligible facilities (those accepting
the stream, enriched with the project's cached drive distances), ranks them
with ``score_candidates()``, and returns the best facility, up to three
alternates, cost/carbon estimates for the planned tonnage, and an explainable
``OptimiserReason``.

Degenerate cases
----------------
  no eligible facility   → no recommendation, score 0,
                           reason "No eligible facilities found"
  one eligible facility  → selected regardless of weights,
                           reason "Only eligible facility"
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from site_waste_planner.interfaces import DistanceCache, FacilityDirectory
from site_waste_planner.models.facility import FacilityCandidate
from site_waste_planner.models.optimiser import (
    FacilityOption,
    OptimiserReason,
    OptimiserResultItem,
    OptimiserWeights,
    StreamDemand,
)
from site_waste_planner.optimiser.scoring import ScoredCandidate, score_candidates

logger = logging.getLogger(__name__)

DEFAULT_ALTERNATIVES = 3

NO_ELIGIBLE = "No eligible facilities found"
ONLY_ELIGIBLE = "Only eligible facility"
CLOSEST = "Closest eligible facility"
DISTANCE_UNAVAILABLE = "Eligible facility selected (distance unavailable)"
MISSING_GEOCODE = (
    "Missing geocode for project or facility; geocode to enable distance ranking."
)


def _fmt(value: float) -> str:
    """Compact number: up to 2 dp, trailing zeros dropped."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _option(c: FacilityCandidate) -> FacilityOption:
    return FacilityOption(
        facility_id=c.facility_id,
        facility_name=c.name,
        distance_km=c.distance_km,
        duration_min=c.duration_min,
    )


def eligible_candidates(
    stream_name: str,
    directory: FacilityDirectory,
    distances: DistanceCache,
    region: Optional[str] = None,
) -> list[FacilityCandidate]:
    """Facilities accepting ``stream_name``, carrying cached distances.

    Searches within ``region`` first and widens to all regions if that
    yields nothing.
    """
    found = directory.facilities_accepting_stream(stream_name, region=region)
    if not found and region:
        found = directory.facilities_accepting_stream(stream_name)
    return [c.with_distance(distances.get(c.facility_id)) for c in found]


def rank_by_distance(candidates: list[FacilityCandidate], facility_id: str) -> int:
    """1-based distance rank of ``facility_id`` (missing distance last, then name)."""
    ordered = sorted(
        candidates,
        key=lambda c: (c.distance_km if c.distance_km is not None else math.inf, c.name),
    )
    for i, c in enumerate(ordered, start=1):
        if c.facility_id == facility_id:
            return i
    return 1


def build_reason(
    stream_name: str,
    chosen: ScoredCandidate,
    candidates: list[FacilityCandidate],
    tonnes: float,
    weights: OptimiserWeights,
) -> OptimiserReason:
    """Explain why ``chosen`` was recommended.

    Args:
        stream_name: Stream being placed.
        chosen:      Top-ranked candidate.
        candidates:  All eligible candidates.
        tonnes:      Planned tonnage (>= 0).
        weights:     Weights requested by the caller.

    Returns:
        ``OptimiserReason`` with a primary sentence and ordered bullets.
    """
    c = chosen.candidate
    count = len(candidates)
    has_distance = c.distance_km is not None
    breakdown = [f"Eligible facilities: {count}"]

    if count == 1:
        if has_distance:
            breakdown.append(f"Distance: {_fmt(c.distance_km)} km")
            if c.duration_min is not None:
                breakdown.append(f"Drive: ~{round(c.duration_min)} min")
        breakdown.append("Meets acceptance criteria for this stream.")
        return OptimiserReason(
            primary=ONLY_ELIGIBLE,
            breakdown=breakdown,
            eligibility_count=1,
            rank_by_distance=1,
            missing_geocode=not has_distance,
        )

    rank = rank_by_distance(candidates, c.facility_id)
    if any(x.distance_km is None for x in candidates):
        breakdown.append("Some facilities missing distance; ranked with available data.")
    if has_distance:
        breakdown.append(f"Distance rank: #{rank} by distance")
        breakdown.append(f"Distance: {_fmt(c.distance_km)} km")
        if c.duration_min is not None:
            breakdown.append(f"Drive: ~{round(c.duration_min)} min")
    breakdown.append(f"Meets acceptance criteria for {stream_name}.")

    if c.cost_per_tonne is not None and tonnes > 0:
        breakdown.append(f"Est. cost: ${c.cost_per_tonne * tonnes:.0f}")
    elif weights.cost > 0 and c.cost_per_tonne is None:
        breakdown.append("Cost data unavailable for this facility.")
    if c.carbon_per_tonne is not None and tonnes > 0:
        breakdown.append(f"Est. carbon: {c.carbon_per_tonne * tonnes / 1000:.2f} tCO2e")
    elif weights.carbon > 0 and c.carbon_per_tonne is None:
        breakdown.append("Carbon data unavailable for this facility.")

    if not has_distance:
        primary = DISTANCE_UNAVAILABLE
        breakdown.append(MISSING_GEOCODE)
    elif rank == 1:
        primary = CLOSEST
    else:
        primary = f"Ranked #{rank} of {count} by distance"

    return OptimiserReason(
        primary=primary,
        breakdown=breakdown,
        eligibility_count=count,
        rank_by_distance=rank,
        missing_geocode=not has_distance,
    )


def optimise_stream(
    demand: StreamDemand,
    candidates: list[FacilityCandidate],
    weights: OptimiserWeights,
    alternatives_count: int = DEFAULT_ALTERNATIVES,
) -> OptimiserResultItem:
    """Recommend a facility for a single stream."""
    tonnes = demand.planned_tonnes
    eligible = [_option(c) for c in candidates]
    scored = score_candidates(candidates, weights)

    if not scored:
        return OptimiserResultItem(
            stream_name=demand.stream_name,
            planned_tonnes=tonnes,
            reason=OptimiserReason(
                primary=NO_ELIGIBLE,
                breakdown=["No facilities accept this stream."],
                eligibility_count=0,
            ),
            eligible_facilities=eligible,
        )

    best = scored[0]
    c = best.candidate
    estimated_cost = c.cost_per_tonne * tonnes if tonnes > 0 and c.cost_per_tonne is not None else None
    estimated_carbon = (
        c.carbon_per_tonne * tonnes / 1000 if tonnes > 0 and c.carbon_per_tonne is not None else None
    )

    return OptimiserResultItem(
        stream_name=demand.stream_name,
        planned_tonnes=tonnes,
        recommended_facility_id=c.facility_id,
        recommended_facility_name=c.name,
        score=best.score,
        distance_km=c.distance_km,
        duration_min=c.duration_min,
        estimated_cost=estimated_cost,
        estimated_carbon=estimated_carbon,
        alternatives=[_option(s.candidate) for s in scored[1 : 1 + alternatives_count]],
        reason=build_reason(demand.stream_name, best, candidates, tonnes, weights),
        eligible_facilities=eligible,
    )


def run_optimiser(
    streams: list[StreamDemand],
    eligible_per_stream: Mapping[str, list[FacilityCandidate]],
    weights: Optional[OptimiserWeights] = None,
    alternatives_count: int = DEFAULT_ALTERNATIVES,
) -> list[OptimiserResultItem]:
    """Run the facility optimiser over every stream.

    Args:
        streams:             Streams with planned tonnage, in output order.
        eligible_per_stream: Stream name → eligible candidates. Missing
            streams are treated as having no eligible facility.
        weights:             Dimension weights; defaults to distance-only.
        alternatives_count:  Maximum alternates per stream.

    Returns:
        One ``OptimiserResultItem`` per input stream, in input order.
    """
    weights = weights or OptimiserWeights()
    results = [
        optimise_stream(s, list(eligible_per_stream.get(s.stream_name, [])), weights, alternatives_count)
        for s in streams
    ]
    placed = sum(1 for r in results if r.has_recommendation)
    logger.info(
        "Optimiser placed %d/%d streams | weights=%s",
        placed, len(results), weights.model_dump(),
    )
    return results
