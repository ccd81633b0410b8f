"""
Facility selection for stream plans.

Selection runs in two independent phases:

  1. validate_existing_assignment()
       The plan's assigned facility is kept if the directory still knows it
       and it still accepts the stream.
  2. search_best_facility()
       Otherwise search by (partner, region), widening to (region) alone if
       that finds nothing, and take the best by diversion rating desc
       (missing = 0), then cached distance asc (missing last), then name.

``pick_best_facility()`` composes the two. ``effective_distance()`` resolves
the distance shown on a stream plan.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from site_waste_planner.interfaces import DistanceCache, FacilityDirectory
from site_waste_planner.models.facility import FacilityCandidate
from site_waste_planner.utils.numbers import non_negative_or_none


@dataclass(frozen=True)
class FacilityPick:
    """Chosen facility plus how it was chosen.

    Attributes:
        facility: The facility, or ``None`` if nothing qualifies.
        source:   ``"existing"``, ``"search"`` or ``"none"``.
    """

    facility: Optional[FacilityCandidate]
    source:   str

    @property
    def partner_id(self) -> Optional[str]:
        return self.facility.partner_id if self.facility else None

    @property
    def partner_name(self) -> Optional[str]:
        return self.facility.partner_name if self.facility else None


def validate_existing_assignment(
    stream_name: str,
    existing_facility_id: Optional[str],
    directory: FacilityDirectory,
) -> Optional[FacilityCandidate]:
    """Phase 1: return the assigned facility if it still accepts the stream."""
    if not existing_facility_id:
        return None
    facility = directory.by_id(existing_facility_id)
    if facility is None or not facility.accepts(stream_name):
        return None
    return facility


def _cached_km(distances: Optional[DistanceCache], facility_id: str) -> float:
    if distances is None:
        return math.inf
    entry = distances.get(facility_id)
    if entry is None or entry.distance_km is None:
        return math.inf
    return entry.distance_km


def search_best_facility(
    stream_name: str,
    directory: FacilityDirectory,
    region: Optional[str] = None,
    partner_id: Optional[str] = None,
    distances: Optional[DistanceCache] = None,
) -> Optional[FacilityCandidate]:
    """Phase 2: best facility accepting the stream in the project's area."""
    candidates = directory.facilities_accepting_stream(stream_name, region=region, partner_id=partner_id)
    if not candidates and region:
        candidates = directory.facilities_accepting_stream(stream_name, region=region)
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda c: (
            -(c.diversion_rating or 0.0),
            _cached_km(distances, c.facility_id),
            c.name,
        ),
    )


def pick_best_facility(
    stream_name: str,
    directory: FacilityDirectory,
    existing_facility_id: Optional[str] = None,
    region: Optional[str] = None,
    partner_id: Optional[str] = None,
    distances: Optional[DistanceCache] = None,
) -> FacilityPick:
    """Validate the existing assignment, else search."""
    existing = validate_existing_assignment(stream_name, existing_facility_id, directory)
    if existing is not None:
        return FacilityPick(facility=existing, source="existing")
    found = search_best_facility(stream_name, directory, region, partner_id, distances)
    if found is not None:
        return FacilityPick(facility=found, source="search")
    return FacilityPick(facility=None, source="none")


def effective_distance(
    override_km: Optional[float],
    override_min: Optional[float],
    assigned_facility_id: Optional[str],
    distances: Optional[DistanceCache],
) -> tuple[Optional[float], Optional[float]]:
    """Resolve (distance_km, duration_min) for a stream plan.

    Explicit persisted overrides win; otherwise the cached entry for the
    assigned facility; otherwise ``None``.
    """
    km = non_negative_or_none(override_km)
    minutes = non_negative_or_none(override_min)
    entry = (
        distances.get(assigned_facility_id)
        if distances is not None and assigned_facility_id
        else None
    )
    if km is None and entry is not None:
        km = entry.distance_km
    if minutes is None and entry is not None:
        minutes = entry.duration_min
    return km, minutes
