"""
Per-project plan document and its schema migration.

The host application stores one loosely-shaped JSON plan document per project:
the list of waste streams in play plus one plan entry per stream (intended
outcome, facility/partner assignment, manual quantity, handling mode and the
forecast total written by the allocation synchroniser).

Older documents predate ``schema_version`` and use legacy field names. Every
read goes through ``migrate_plan_document()``, which steps the raw dict up to
``CURRENT_SCHEMA_VERSION`` and returns a canonical, validated ``PlanDocument``.

Schema history
--------------
  v1  Unversioned. Outcomes in ``outcomes`` (list) or ``outcome`` (str) with
      "Dispose"/"Clean fill" spellings, quantity in ``estimated_quantity``,
      free-text ``destination``, and "skip"/"load" pseudo-units.
  v2  Current. Single canonical field per concept; ``intended_outcomes`` holds
      exactly one valid outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from site_waste_planner.taxonomy.stream_defaults import (
    CATCH_ALL_STREAM,
    PLAN_UNITS,
    default_outcomes_for_stream,
)
from site_waste_planner.taxonomy.stream_taxonomy import (
    DestinationMode,
    HandlingMode,
    IntendedOutcome,
)
from site_waste_planner.utils.numbers import non_negative_or_none, positive_or_none
from site_waste_planner.utils.text import clean_str

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2
DEFAULT_OUTCOME = IntendedOutcome.RECYCLE.value
FORECAST_UNIT = "tonne"

_VALID_OUTCOMES = frozenset(o.value for o in IntendedOutcome)
_LEGACY_OUTCOME_ALIASES = {"Dispose": "Landfill", "Clean fill": "Cleanfill"}
_LEGACY_UNIT_ALIASES = {"skip": "m2", "load": "L"}


class StreamPlanInput(BaseModel):
    """One stream's entry in the plan document, as authored by the user.

    Constructing from a raw dict canonicalises it: blank strings become
    ``None``, invalid numbers are dropped, only the first valid intended
    outcome is kept, and ``destination_mode`` is inferred when absent.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    category: str = CATCH_ALL_STREAM
    intended_outcomes: list[str] = [DEFAULT_OUTCOME]
    destination_mode: DestinationMode = DestinationMode.FACILITY
    partner_id: Optional[str] = None
    facility_id: Optional[str] = None
    waste_contractor_partner_id: Optional[str] = None
    destination_override: Optional[str] = None
    custom_destination_name: Optional[str] = None
    custom_destination_address: Optional[str] = None
    estimated_qty: Optional[float] = None
    unit: Optional[str] = None
    manual_qty_tonnes: Optional[float] = None
    density_kg_m3: Optional[float] = None
    thickness_m: Optional[float] = None
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    forecast_qty: Optional[float] = None
    forecast_unit: Optional[str] = None
    handling_mode: HandlingMode = HandlingMode.MIXED
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def infer_destination_mode(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, Mapping):
            return {}
        data = dict(data)
        mode = data.get("destination_mode")
        if mode in (DestinationMode.FACILITY.value, DestinationMode.CUSTOM.value):
            return data
        has_custom = any(
            clean_str(data.get(key))
            for key in ("destination_override", "custom_destination_address")
        )
        if clean_str(data.get("facility_id")):
            data["destination_mode"] = DestinationMode.FACILITY.value
        elif has_custom:
            data["destination_mode"] = DestinationMode.CUSTOM.value
        else:
            data["destination_mode"] = DestinationMode.FACILITY.value
        return data

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return clean_str(v) or CATCH_ALL_STREAM

    @field_validator("intended_outcomes", mode="before")
    @classmethod
    def single_valid_outcome(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return [DEFAULT_OUTCOME]
        valid = [s for s in (clean_str(x) for x in v) if s in _VALID_OUTCOMES]
        return valid[:1] or [DEFAULT_OUTCOME]

    @field_validator("unit", mode="before")
    @classmethod
    def valid_unit(cls, v: Any) -> Optional[str]:
        unit = clean_str(v)
        return unit if unit in PLAN_UNITS else None

    @field_validator(
        "estimated_qty", "manual_qty_tonnes", "thickness_m",
        "distance_km", "duration_min", "forecast_qty",
        mode="before",
    )
    @classmethod
    def non_negative(cls, v: Any) -> Optional[float]:
        return non_negative_or_none(v)

    @field_validator("density_kg_m3", mode="before")
    @classmethod
    def positive_density(cls, v: Any) -> Optional[float]:
        return positive_or_none(v)

    @field_validator(
        "partner_id", "facility_id", "waste_contractor_partner_id",
        "destination_override", "custom_destination_name",
        "custom_destination_address", "forecast_unit", "notes",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return clean_str(v)

    @field_validator("handling_mode", mode="before")
    @classmethod
    def default_handling(cls, v: Any) -> str:
        return v if v in (HandlingMode.MIXED.value, HandlingMode.SEPARATED.value) else HandlingMode.MIXED.value

    @property
    def stream_name(self) -> str:
        return self.category


class PlanDocument(BaseModel):
    """Canonical plan document. Produce via ``migrate_plan_document()``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    schema_version: int = CURRENT_SCHEMA_VERSION
    project_id: Optional[str] = None
    waste_streams: list[str] = [CATCH_ALL_STREAM]
    waste_stream_plans: list[StreamPlanInput] = []

    @field_validator("project_id", mode="before")
    @classmethod
    def clean_project_id(cls, v: Any) -> Optional[str]:
        return clean_str(v)

    @field_validator("waste_streams", mode="before")
    @classmethod
    def dedupe_streams(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            return [CATCH_ALL_STREAM]
        seen: list[str] = []
        for name in (clean_str(x) for x in v):
            if name and name not in seen:
                seen.append(name)
        return seen or [CATCH_ALL_STREAM]

    @field_validator("waste_stream_plans", mode="before")
    @classmethod
    def plans_list(cls, v: Any) -> list[Any]:
        return list(v) if isinstance(v, (list, tuple)) else []

    def plan_for(self, stream_name: str) -> Optional[StreamPlanInput]:
        for plan in self.waste_stream_plans:
            if plan.category == stream_name:
                return plan
        return None

    def to_storage(self) -> dict[str, Any]:
        """JSON-safe dict for persistence."""
        return self.model_dump(mode="json")


# ── Factories ─────────────────────────────────────────────────────────────────


def new_plan_for_stream(stream_name: str) -> StreamPlanInput:
    """Template plan entry for a stream added to the document."""
    return StreamPlanInput(
        category=stream_name,
        intended_outcomes=default_outcomes_for_stream(stream_name),
        destination_mode=DestinationMode.FACILITY,
        handling_mode=HandlingMode.MIXED,
    )


def default_plan_document(project_id: Optional[str] = None) -> PlanDocument:
    """Starting document: just the catch-all stream."""
    return PlanDocument(
        project_id=project_id,
        waste_streams=[CATCH_ALL_STREAM],
        waste_stream_plans=[new_plan_for_stream(CATCH_ALL_STREAM)],
    )


# ── Migration ─────────────────────────────────────────────────────────────────


def _upgrade_v1(doc: dict[str, Any]) -> dict[str, Any]:
    """v1 → v2: rename legacy plan fields and legacy value spellings."""
    plans = doc.get("waste_stream_plans")
    upgraded: list[Any] = []
    for raw in plans if isinstance(plans, list) else []:
        if not isinstance(raw, Mapping):
            upgraded.append(raw)
            continue
        plan = dict(raw)

        if not isinstance(plan.get("intended_outcomes"), list):
            if isinstance(plan.get("outcomes"), list):
                plan["intended_outcomes"] = plan["outcomes"]
            elif isinstance(plan.get("outcome"), str):
                plan["intended_outcomes"] = [plan["outcome"]]
        if isinstance(plan.get("intended_outcomes"), list):
            plan["intended_outcomes"] = [
                _LEGACY_OUTCOME_ALIASES.get(str(o).strip(), o) for o in plan["intended_outcomes"]
            ]

        unit = plan.get("unit")
        if isinstance(unit, str) and unit in _LEGACY_UNIT_ALIASES:
            plan["unit"] = _LEGACY_UNIT_ALIASES[unit]

        if plan.get("estimated_qty") is None and plan.get("estimated_quantity") is not None:
            plan["estimated_qty"] = plan["estimated_quantity"]

        if not clean_str(plan.get("destination_override")) and clean_str(plan.get("destination")):
            plan["destination_override"] = plan["destination"]

        for legacy_key in ("outcomes", "outcome", "estimated_quantity", "destination"):
            plan.pop(legacy_key, None)
        upgraded.append(plan)

    doc["waste_stream_plans"] = upgraded
    doc["schema_version"] = 2
    return doc


_UPGRADES: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _upgrade_v1,
}


def _schema_version(raw: Mapping[str, Any]) -> int:
    version = raw.get("schema_version")
    if isinstance(version, bool):
        return 1
    try:
        return max(1, int(version)) if version is not None else 1
    except (TypeError, ValueError):
        return 1


def migrate_plan_document(
    raw: Optional[Mapping[str, Any]],
    project_id: Optional[str] = None,
) -> PlanDocument:
    """Normalise a stored plan document into the current canonical shape.

    Args:
        raw: Stored document as read from the plan store, or ``None``.
        project_id: Project to stamp on the document when it carries none.

    Returns:
        Validated ``PlanDocument`` at ``CURRENT_SCHEMA_VERSION``. A missing
        document yields ``default_plan_document(project_id)``.

    Raises:
        ValueError: If ``raw`` declares a schema version newer than this code
            understands.
    """
    if raw is None:
        return default_plan_document(project_id)
    if not isinstance(raw, Mapping):
        logger.warning("Plan document is not a mapping (%s); starting from default.", type(raw).__name__)
        return default_plan_document(project_id)

    version = _schema_version(raw)
    if version > CURRENT_SCHEMA_VERSION:
        raise ValueError(
            f"Plan document schema_version {version} is newer than supported "
            f"version {CURRENT_SCHEMA_VERSION}."
        )

    doc = dict(raw)
    while version < CURRENT_SCHEMA_VERSION:
        logger.debug("Upgrading plan document from schema v%d", version)
        doc = _UPGRADES[version](doc)
        version += 1

    doc["schema_version"] = CURRENT_SCHEMA_VERSION
    if clean_str(doc.get("project_id")) is None:
        doc["project_id"] = project_id
    return PlanDocument.model_validate(doc)
