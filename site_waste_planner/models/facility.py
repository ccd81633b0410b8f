"""
Facilities, projects and cached drive distances.

``FacilityCandidate`` is read-only reference data from the facility
directory. The optimiser works on copies enriched with the project's cached
distance via ``with_distance()``.

``DistanceEntry`` values arrive from the distance cache in metres/seconds and
are normalised to km (2 dp) and minutes (1 dp).
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from site_waste_planner.utils.numbers import as_finite, non_negative_or_none
from site_waste_planner.utils.text import clean_str


class FacilityCandidate(BaseModel):
    """A disposal or recycling facility.

    Attributes:
        facility_id: Stable identifier, e.g. ``"akl-metals-1"``.
        name: Display name.
        partner_id: Operating partner (waste contractor) id.
        partner_name: Operating partner display name.
        region: Region code used for facility search.
        accepted_streams: Stream labels this facility accepts.
        distance_km: Drive distance from the project site (lower is better).
        duration_min: Drive duration from the project site.
        cost_per_tonne: Gate fee per tonne (lower is better).
        carbon_per_tonne: kg CO2e per tonne handled (lower is better).
        diversion_rating: Share diverted from landfill, 0-100 (higher is better).
    """

    model_config = ConfigDict(frozen=True)

    facility_id: str
    name: str
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    region: Optional[str] = None
    accepted_streams: tuple[str, ...] = ()
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    cost_per_tonne: Optional[float] = None
    carbon_per_tonne: Optional[float] = None
    diversion_rating: Optional[float] = None

    @field_validator("distance_km", "duration_min", mode="before")
    @classmethod
    def coerce_non_negative(cls, v: Any) -> Optional[float]:
        return non_negative_or_none(v)

    @field_validator("cost_per_tonne", "carbon_per_tonne", "diversion_rating", mode="before")
    @classmethod
    def coerce_finite(cls, v: Any) -> Optional[float]:
        return as_finite(v)

    @field_validator("partner_id", "partner_name", "region", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return clean_str(v)

    def accepts(self, stream_name: str) -> bool:
        return stream_name in self.accepted_streams

    def with_distance(self, entry: Optional["DistanceEntry"]) -> "FacilityCandidate":
        """Return a copy carrying the cached distance, or ``self`` if none."""
        if entry is None:
            return self
        return self.model_copy(
            update={"distance_km": entry.distance_km, "duration_min": entry.duration_min}
        )


class DistanceEntry(BaseModel):
    """Cached drive distance/duration between a project site and a facility."""

    model_config = ConfigDict(frozen=True)

    facility_id: str
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None

    @field_validator("facility_id")
    @classmethod
    def normalise_key(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("distance_km", "duration_min", mode="before")
    @classmethod
    def coerce_non_negative(cls, v: Any) -> Optional[float]:
        return non_negative_or_none(v)

    @classmethod
    def from_raw(
        cls,
        facility_id: str,
        distance_m: Optional[float],
        duration_s: Optional[float],
    ) -> "DistanceEntry":
        """Build an entry from distance-matrix units (metres, seconds)."""
        metres = non_negative_or_none(distance_m)
        seconds = non_negative_or_none(duration_s)
        return cls(
            facility_id=facility_id,
            distance_km=round(metres / 1000, 2) if metres is not None else None,
            duration_min=round(seconds / 60, 1) if seconds is not None else None,
        )


class Project(BaseModel):
    """Project context the planner needs: region and primary contractor."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    name: Optional[str] = None
    region: Optional[str] = None
    primary_partner_id: Optional[str] = None

    @field_validator("name", "region", "primary_partner_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return clean_str(v)
