"""
Controlled vocabularies for waste streams, facilities and recommendations.

Stream plan dimensions:
  - ``HandlingMode``        - how the stream is handled onsite *today*.
  - ``RecommendedHandling`` - what the planner recommends.
  - ``Significance``        - tonnage tier driving separation advice.
  - ``IntendedOutcome``     - plan-level outcome label as entered by the user.
  - ``OutcomeClass``        - the outcome folded into diversion accounting.

Recommendation dimensions:
  - ``Priority``, ``Confidence``, ``RecommendationCategory``, ``ApplyActionType``.

Allocation:
  - ``AllocationBucket`` - where a forecast item lands after synchronisation.

This module has NO imports from any other ``site_waste_planner`` package.
"""

from enum import StrEnum


class HandlingMode(StrEnum):
    MIXED = "mixed"
    """Co-mingled with the catch-all stream."""

    SEPARATED = "separated"
    """Source-separated onsite in its own bin or skip."""


class RecommendedHandling(StrEnum):
    SEPARATE = "separate"
    MIXED = "mixed"
    REDUCE_AT_SOURCE = "reduce_at_source"


class Significance(StrEnum):
    """Stream tonnage tier."""

    MAJOR = "major"
    """At or above the major threshold (1.0 t by default)."""

    MEDIUM = "medium"
    """At or above the medium threshold (0.2 t by default)."""

    MINOR = "minor"


class IntendedOutcome(StrEnum):
    """Outcome options a plan author can pick for a stream."""

    REDUCE = "Reduce"
    REUSE = "Reuse"
    RECYCLE = "Recycle"
    RECOVER = "Recover"
    CLEANFILL = "Cleanfill"
    LANDFILL = "Landfill"


class OutcomeClass(StrEnum):
    """Intended outcome collapsed for diversion accounting.

    ``RECYCLE`` and ``REUSE`` count as diverted; ``LANDFILL`` as landfill;
    ``UNKNOWN`` is reported separately.
    """

    RECYCLE = "recycle"
    REUSE = "reuse"
    LANDFILL = "landfill"
    UNKNOWN = "unknown"


class DestinationMode(StrEnum):
    FACILITY = "facility"
    CUSTOM = "custom"


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER: dict[str, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(StrEnum):
    SOURCE_SEPARATION = "source_separation"
    FACILITY_OPTIMISATION = "facility_optimisation"
    PROCUREMENT_REDUCTION = "procurement_reduction"
    SITE_LOGISTICS = "site_logistics"
    CONTRACTOR_ENGAGEMENT = "contractor_engagement"
    DOCUMENTATION = "documentation"
    DATA_QUALITY = "data_quality"


class ApplyActionType(StrEnum):
    """One-click plan edits a recommendation may offer."""

    CREATE_STREAM = "create_stream"
    ALLOCATE_TO_MIXED = "allocate_to_mixed"
    SET_FACILITY = "set_facility"
    SET_OUTCOME = "set_outcome"
    MARK_STREAM_SEPARATE = "mark_stream_separate"


class StreamActionType(StrEnum):
    """Suggested next steps attached to an individual stream plan."""

    SELECT_FACILITY = "select_facility"
    SEPARATE_STREAM = "separate_stream"


class AllocationBucket(StrEnum):
    UNALLOCATED = "unallocated"
    """No stream assigned, or assigned to a stream the catalog does not know."""

    CONVERSION_REQUIRED = "conversion_required"
    """Allocated, but the unit cannot be converted to mass."""

    INCLUDED = "included"
    """Allocated with a resolvable mass; counts toward stream totals."""
