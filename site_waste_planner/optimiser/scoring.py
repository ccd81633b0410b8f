"""
Facility scoring engine: normalised multi-criteria ranking.

Scoring formula
---------------
Each dimension is min-max normalised across the candidate set onto [0, 1],
oriented so that higher is always better:

  distance, cost, carbon   (lower raw is better)   norm = (max - v) / (max - min)
  diversion_rating         (higher raw is better)  norm = (v - min) / (max - min)

If every finite value of a dimension is equal, all of them normalise to 1.

A dimension is *used* only when at least one candidate has a finite value for
it AND its weight is > 0. The composite score is

  score = Σ weight_d × norm_d  /  Σ weight_d      (over used dimensions)

A candidate missing a used dimension contributes 0 for it. When no
dimension is used but distance data exists, ranking falls back to
distance-only with weight 1. With no usable data at all every score is 0.

Ordering: score desc, then raw distance asc (missing last), then name.

Normalisation is recomputed per call; no state is shared between calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

from site_waste_planner.models.facility import FacilityCandidate
from site_waste_planner.models.optimiser import OptimiserWeights
from site_waste_planner.utils.numbers import as_finite

DIMENSIONS: tuple[str, ...] = ("distance", "cost", "carbon", "diversion")

_VALUE_OF: dict[str, Callable[[FacilityCandidate], Optional[float]]] = {
    "distance":  lambda c: c.distance_km,
    "cost":      lambda c: c.cost_per_tonne,
    "carbon":    lambda c: c.carbon_per_tonne,
    "diversion": lambda c: c.diversion_rating,
}
_HIGHER_IS_BETTER = frozenset({"diversion"})


@dataclass
class ScoredCandidate:
    """A facility with its composite score.

    Attributes:
        candidate:       The scored facility.
        score:           Composite score in [0, 1].
        dimensions_used: Dimensions that contributed a value for this candidate.
    """

    candidate:       FacilityCandidate
    score:           float
    dimensions_used: tuple[str, ...]

    def used(self, dimension: str) -> bool:
        return dimension in self.dimensions_used


def _normalise(values: list[Optional[float]], higher_is_better: bool) -> list[Optional[float]]:
    finite = [v for v in values if v is not None]
    if not finite:
        return [None] * len(values)
    lo, hi = min(finite), max(finite)
    span = hi - lo
    out: list[Optional[float]] = []
    for v in values:
        if v is None:
            out.append(None)
        elif span <= 0:
            out.append(1.0)
        elif higher_is_better:
            out.append((v - lo) / span)
        else:
            out.append((hi - v) / span)
    return out


def effective_weights(
    weights: OptimiserWeights,
    has_data: dict[str, bool],
) -> dict[str, float]:
    """Weights actually applied, after dropping absent dimensions.

    Returns a mapping containing only the dimensions in use. Empty when
    nothing can be scored.
    """
    requested = weights.model_dump()
    used = {d: requested[d] for d in DIMENSIONS if has_data[d] and requested[d] > 0}
    if not used and has_data["distance"]:
        used = {"distance": 1.0}
    return used


def _sort_key(sc: ScoredCandidate) -> tuple[float, float, str]:
    distance = sc.candidate.distance_km
    return (
        -sc.score,
        distance if distance is not None else math.inf,
        sc.candidate.name,
    )


def score_candidates(
    candidates: list[FacilityCandidate],
    weights: Optional[OptimiserWeights] = None,
) -> list[ScoredCandidate]:
    """Score and rank facilities for one stream.

    Args:
        candidates: Eligible facilities (already carrying distances).
        weights:    Dimension weights; defaults to distance-only.

    Returns:
        ``ScoredCandidate`` list, best first. Empty for empty input.
    """
    if not candidates:
        return []
    weights = weights or OptimiserWeights()

    raw = {d: [as_finite(_VALUE_OF[d](c)) for c in candidates] for d in DIMENSIONS}
    norm = {d: _normalise(raw[d], d in _HIGHER_IS_BETTER) for d in DIMENSIONS}
    has_data = {d: any(v is not None for v in raw[d]) for d in DIMENSIONS}

    applied = effective_weights(weights, has_data)
    total_weight = sum(applied.values())

    scored: list[ScoredCandidate] = []
    for i, candidate in enumerate(candidates):
        weighted = 0.0
        used: list[str] = []
        for dim, w in applied.items():
            n = norm[dim][i]
            if n is not None:
                weighted += w * n
                used.append(dim)
        score = weighted / total_weight if total_weight > 0 else 0.0
        scored.append(ScoredCandidate(candidate=candidate, score=score, dimensions_used=tuple(used)))

    scored.sort(key=_sort_key)
    return scored
