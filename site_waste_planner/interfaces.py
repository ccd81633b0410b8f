"""
Collaborator interfaces consumed by the planning core.

The engine never talks to a database or network directly. Entry points
(``sync_allocation``, ``build_strategy``) take objects satisfying these
protocols; ``site_waste_planner.db.repositories`` provides SQLite
implementations and the tests use in-memory fakes.

All calls are synchronous. A store raising an exception aborts the calling
operation; the core never catches collaborator errors.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from site_waste_planner.models.facility import DistanceEntry, FacilityCandidate, Project
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import PlanDocument
from site_waste_planner.models.stream import StreamDefinition


class ForecastItemStore(Protocol):
    def list_items(self, project_id: str) -> list[ForecastLineItem]: ...

    def update_computed_fields(
        self, item_id: str, waste_qty: float, waste_kg: Optional[float]
    ) -> None: ...


class StreamCatalog(Protocol):
    def active_streams(self) -> list[StreamDefinition]: ...


class FacilityDirectory(Protocol):
    def facilities_accepting_stream(
        self,
        stream_name: str,
        region: Optional[str] = None,
        partner_id: Optional[str] = None,
    ) -> list[FacilityCandidate]: ...

    def by_id(self, facility_id: str) -> Optional[FacilityCandidate]: ...


class DistanceCache(Protocol):
    """Pre-computed drive distances for one project, keyed by facility id."""

    def get(self, facility_id: str) -> Optional[DistanceEntry]: ...


class PlanDocumentStore(Protocol):
    def read(self, project_id: str) -> Optional[Mapping[str, Any]]: ...

    def write(self, project_id: str, document: PlanDocument) -> None: ...


class ProjectDirectory(Protocol):
    def get(self, project_id: str) -> Optional[Project]: ...


class DistanceMap:
    """Dict-backed ``DistanceCache``. Facility ids are matched case-insensitively."""

    def __init__(self, entries: Optional[list[DistanceEntry]] = None) -> None:
        self._entries: dict[str, DistanceEntry] = {}
        for entry in entries or []:
            self._entries[entry.facility_id] = entry

    def get(self, facility_id: str) -> Optional[DistanceEntry]:
        return self._entries.get(facility_id.strip().lower())

    def __len__(self) -> int:
        return len(self._entries)
