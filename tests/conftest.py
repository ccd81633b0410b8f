"""
Shared pytest fixtures for the Site Waste Planner test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema
    applied.
  - ``fakes``: in-memory implementations of every collaborator protocol,
    for engine tests that should not touch SQLite.
  - ``sample_facilities`` / ``sample_streams``: small reference data sets.
"""

from __future__ import annotations

import copy
import sqlite3
from types import SimpleNamespace
from typing import Any, Generator, Mapping, Optional

import pytest

from site_waste_planner.db.schema import apply_schema
from site_waste_planner.models.facility import FacilityCandidate, Project
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import PlanDocument
from site_waste_planner.models.stream import StreamDefinition


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Fresh in-memory SQLite connection, foreign keys ON, schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── In-memory collaborators ───────────────────────────────────────────────────

class InMemoryItemStore:
    def __init__(self, items: Optional[list[ForecastLineItem]] = None) -> None:
        self.items = {i.item_id: i for i in items or []}
        self.updates: list[str] = []

    def list_items(self, project_id: str) -> list[ForecastLineItem]:
        return [i for i in self.items.values() if i.project_id == project_id]

    def update_computed_fields(self, item_id: str, waste_qty: float, waste_kg: Optional[float]) -> None:
        self.items[item_id] = self.items[item_id].model_copy(
            update={"computed_waste_qty": waste_qty, "computed_waste_kg": waste_kg}
        )
        self.updates.append(item_id)


class InMemoryCatalog:
    def __init__(self, streams: Optional[list[StreamDefinition]] = None) -> None:
        self.streams = list(streams or [])

    def active_streams(self) -> list[StreamDefinition]:
        return [s for s in self.streams if s.is_active]


class InMemoryDirectory:
    def __init__(self, facilities: Optional[list[FacilityCandidate]] = None) -> None:
        self.facilities = list(facilities or [])

    def facilities_accepting_stream(
        self,
        stream_name: str,
        region: Optional[str] = None,
        partner_id: Optional[str] = None,
    ) -> list[FacilityCandidate]:
        return [
            f for f in self.facilities
            if f.accepts(stream_name)
            and (region is None or f.region == region)
            and (partner_id is None or f.partner_id == partner_id)
        ]

    def by_id(self, facility_id: str) -> Optional[FacilityCandidate]:
        return next((f for f in self.facilities if f.facility_id == facility_id), None)


class InMemoryPlanStore:
    """Stores documents as plain dicts, like the JSON column in SQLite."""

    def __init__(self, documents: Optional[dict[str, Mapping[str, Any]]] = None, fail_on_write: bool = False) -> None:
        self.documents = {k: copy.deepcopy(dict(v)) for k, v in (documents or {}).items()}
        self.fail_on_write = fail_on_write
        self.writes = 0

    def read(self, project_id: str) -> Optional[dict[str, Any]]:
        doc = self.documents.get(project_id)
        return copy.deepcopy(doc) if doc is not None else None

    def write(self, project_id: str, document: PlanDocument) -> None:
        if self.fail_on_write:
            raise sqlite3.OperationalError("database is locked")
        self.documents[project_id] = document.to_storage()
        self.writes += 1


class InMemoryProjects:
    def __init__(self, projects: Optional[list[Project]] = None) -> None:
        self.projects = {p.project_id: p for p in projects or []}

    def get(self, project_id: str) -> Optional[Project]:
        return self.projects.get(project_id)


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Namespace of in-memory collaborator classes."""
    return SimpleNamespace(
        ItemStore=InMemoryItemStore,
        Catalog=InMemoryCatalog,
        Directory=InMemoryDirectory,
        PlanStore=InMemoryPlanStore,
        Projects=InMemoryProjects,
    )


# ── Sample reference data ─────────────────────────────────────────────────────

@pytest.fixture
def sample_streams() -> list[StreamDefinition]:
    return [
        StreamDefinition(name="Mixed C&D", default_density=1200),
        StreamDefinition(name="Metals", default_linear_mass_factor=5.0),
        StreamDefinition(name="Timber (untreated)", default_density=178),
        StreamDefinition(name="Plasterboard / GIB"),
    ]


@pytest.fixture
def sample_facilities() -> list[FacilityCandidate]:
    """Three Auckland facilities and one in Waikato."""
    return [
        FacilityCandidate(
            facility_id="gc-east",
            name="GreenCycle East",
            partner_id="greencycle",
            region="AKL",
            accepted_streams=("Mixed C&D", "Metals", "Timber (untreated)"),
            cost_per_tonne=165,
            diversion_rating=55,
        ),
        FacilityCandidate(
            facility_id="metro-metals",
            name="Metro Metals",
            partner_id="metro",
            region="AKL",
            accepted_streams=("Metals",),
            cost_per_tonne=-20,
            diversion_rating=98,
        ),
        FacilityCandidate(
            facility_id="south-landfill",
            name="Southern Landfill",
            region="AKL",
            accepted_streams=("Mixed C&D",),
            cost_per_tonne=210,
            diversion_rating=0,
        ),
        FacilityCandidate(
            facility_id="wk-timber",
            name="Waikato Timber Recovery",
            partner_id="greencycle",
            region="WKO",
            accepted_streams=("Timber (untreated)",),
            diversion_rating=90,
        ),
    ]
