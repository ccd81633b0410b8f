"""
Pure stream classification rules.

  classify_significance()  tonnage tier (major / medium / minor)
  outcome_class()          intended outcome → diversion accounting class
  is_hazardous_name()      keyword test for hazardous or special streams
  recommend_handling()     separate vs mixed advice for a stream
"""

from __future__ import annotations

from typing import Sequence

from site_waste_planner.taxonomy.stream_defaults import CATCH_ALL_STREAM
from site_waste_planner.taxonomy.stream_taxonomy import (
    IntendedOutcome,
    OutcomeClass,
    RecommendedHandling,
    Significance,
)

MAJOR_STREAM_TONNES = 1.0
MEDIUM_STREAM_TONNES = 0.2

HAZARDOUS_KEYWORDS: tuple[str, ...] = ("hazardous", "contaminated", "paint", "chemical", "asbestos")
PLASTERBOARD_KEYWORDS: tuple[str, ...] = ("plasterboard", "gib", "gypsum")

_OUTCOME_CLASSES: dict[str, OutcomeClass] = {
    IntendedOutcome.LANDFILL: OutcomeClass.LANDFILL,
    IntendedOutcome.REUSE: OutcomeClass.REUSE,
    IntendedOutcome.RECYCLE: OutcomeClass.RECYCLE,
    IntendedOutcome.RECOVER: OutcomeClass.RECYCLE,
    IntendedOutcome.CLEANFILL: OutcomeClass.RECYCLE,
    IntendedOutcome.REDUCE: OutcomeClass.RECYCLE,
}


def classify_significance(
    total_tonnes: float,
    major_tonnes: float = MAJOR_STREAM_TONNES,
    medium_tonnes: float = MEDIUM_STREAM_TONNES,
) -> Significance:
    if total_tonnes >= major_tonnes:
        return Significance.MAJOR
    if total_tonnes >= medium_tonnes:
        return Significance.MEDIUM
    return Significance.MINOR


def outcome_class(intended_outcomes: Sequence[str]) -> OutcomeClass:
    """Classify by the first intended outcome; unknown or empty → ``UNKNOWN``."""
    first = str(intended_outcomes[0]).strip() if intended_outcomes else ""
    return _OUTCOME_CLASSES.get(first, OutcomeClass.UNKNOWN)


def is_recyclable(outcome: OutcomeClass) -> bool:
    return outcome in (OutcomeClass.RECYCLE, OutcomeClass.REUSE)


def is_hazardous_name(stream_name: str) -> bool:
    lower = stream_name.lower()
    return any(k in lower for k in HAZARDOUS_KEYWORDS)


def is_plasterboard_name(stream_name: str) -> bool:
    lower = stream_name.lower()
    return any(k in lower for k in PLASTERBOARD_KEYWORDS)


def recommend_handling(
    stream_name: str,
    significance: Significance,
    outcome: OutcomeClass,
    catch_all_stream: str = CATCH_ALL_STREAM,
) -> RecommendedHandling:
    """Recommend onsite handling for a stream.

    Rules, first match wins:
      1. The catch-all stream stays mixed.
      2. Minor and not hazardous → mixed.
      3. Major or medium, and recyclable/reusable → separate.
      4. Minor and hazardous-named → separate.
      5. Otherwise mixed.
    """
    if stream_name == catch_all_stream:
        return RecommendedHandling.MIXED
    hazardous = is_hazardous_name(stream_name)
    if significance is Significance.MINOR and not hazardous:
        return RecommendedHandling.MIXED
    if significance in (Significance.MAJOR, Significance.MEDIUM) and is_recyclable(outcome):
        return RecommendedHandling.SEPARATE
    if significance is Significance.MINOR and hazardous:
        return RecommendedHandling.SEPARATE
    return RecommendedHandling.MIXED
