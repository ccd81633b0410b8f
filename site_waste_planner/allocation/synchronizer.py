"""
Allocation synchroniser: forecast items → per-stream forecast tonnes.

Usage flow
----------
1. compute_allocation(items, streams)
   -> list[ItemAllocation]  (per item: waste qty, waste kg, bucket)

2. summarise_allocation(allocations)
   -> SyncResult  (per-stream tonnes + bucket counts)

3. ensure_stream_in_document(document, stream_key)
   apply_forecast_totals(document, totals)
   -> PlanDocument  (additive stream list + recomputed ``forecast_qty``)

4. sync_allocation(project_id, items=..., catalog=..., plans=...)
   Runs 1-3 against the collaborators. Everything is computed before the
   first write, so a failing store leaves nothing half-derived in memory;
   transactional stores (SQLite) roll back the writes they already made.

The whole pipeline is idempotent: it recomputes from the raw item fields
every time and overwrites derived values, so two consecutive syncs with no
intervening edits produce identical state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from site_waste_planner.conversion.units import to_mass_kg, waste_in_unit
from site_waste_planner.interfaces import ForecastItemStore, PlanDocumentStore, StreamCatalog
from site_waste_planner.models.allocation import StreamTotal, SyncResult
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import (
    FORECAST_UNIT,
    PlanDocument,
    migrate_plan_document,
    new_plan_for_stream,
)
from site_waste_planner.models.stream import StreamDefinition
from site_waste_planner.taxonomy.stream_taxonomy import AllocationBucket
from site_waste_planner.utils.numbers import non_negative_or_none, positive_or_none

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemAllocation:
    """Derived values for one forecast item.

    Attributes:
        item_id:    Forecast item id.
        stream_key: Canonical stream name, or ``None`` if unallocated.
        waste_qty:  Waste quantity in the item's unit.
        waste_kg:   Waste mass in kg, ``None`` if unresolvable.
        bucket:     Allocation classification.
    """

    item_id:    str
    stream_key: Optional[str]
    waste_qty:  float
    waste_kg:   Optional[float]
    bucket:     AllocationBucket


# ── Pure computation ──────────────────────────────────────────────────────────


def _stream_index(streams: list[StreamDefinition]) -> dict[str, StreamDefinition]:
    """Active streams keyed by lowercased name."""
    return {s.name.lower(): s for s in streams if s.is_active}


def allocate_item(
    item: ForecastLineItem,
    streams_by_key: dict[str, StreamDefinition],
) -> ItemAllocation:
    """Compute waste quantity, mass and bucket for a single item.

    Conversion factors resolve item override → stream default → ``None``.
    An item allocated to a stream the catalog does not list is treated as
    unallocated, but its mass is still derived from its own factors.
    """
    stream = (
        streams_by_key.get(item.allocated_stream_key.lower())
        if item.allocated_stream_key
        else None
    )

    linear_factor = non_negative_or_none(item.linear_mass_factor)
    if linear_factor is None and stream is not None:
        linear_factor = stream.default_linear_mass_factor

    density = positive_or_none(item.density)
    if density is None and stream is not None:
        density = stream.default_density

    waste_qty = waste_in_unit(item.quantity, item.excess_percent)
    waste_kg = to_mass_kg(waste_qty, item.unit, linear_mass_factor=linear_factor, density=density)

    if stream is None:
        bucket = AllocationBucket.UNALLOCATED
    elif waste_kg is None:
        bucket = AllocationBucket.CONVERSION_REQUIRED
    else:
        bucket = AllocationBucket.INCLUDED

    return ItemAllocation(
        item_id=item.item_id,
        stream_key=stream.name if stream is not None else None,
        waste_qty=waste_qty,
        waste_kg=waste_kg,
        bucket=bucket,
    )


def compute_allocation(
    items: list[ForecastLineItem],
    streams: list[StreamDefinition],
) -> list[ItemAllocation]:
    """Allocate every item against the active stream catalog."""
    index = _stream_index(streams)
    return [allocate_item(item, index) for item in items]


def summarise_allocation(allocations: list[ItemAllocation]) -> SyncResult:
    """Aggregate included items into per-stream tonnes and count buckets."""
    kg_by_stream: dict[str, float] = {}
    counts = {bucket: 0 for bucket in AllocationBucket}

    for a in allocations:
        counts[a.bucket] += 1
        if a.bucket is AllocationBucket.INCLUDED and a.stream_key is not None:
            kg_by_stream[a.stream_key] = kg_by_stream.get(a.stream_key, 0.0) + (a.waste_kg or 0.0)

    totals = [
        StreamTotal(stream_key=key, total_tonnes=kg / 1000)
        for key, kg in sorted(kg_by_stream.items())
    ]
    return SyncResult(
        stream_totals=totals,
        unallocated_count=counts[AllocationBucket.UNALLOCATED],
        conversion_required_count=counts[AllocationBucket.CONVERSION_REQUIRED],
        included_count=counts[AllocationBucket.INCLUDED],
    )


def ensure_stream_in_document(document: PlanDocument, stream_key: str) -> PlanDocument:
    """Add ``stream_key`` (and a template plan) if the document lacks it.

    Additive only: existing streams and plans are never removed or edited.
    """
    streams = list(document.waste_streams)
    plans = list(document.waste_stream_plans)
    changed = False

    if stream_key not in streams:
        streams.append(stream_key)
        changed = True
    if document.plan_for(stream_key) is None:
        plans.append(new_plan_for_stream(stream_key))
        changed = True

    if not changed:
        return document
    return document.model_copy(update={"waste_streams": streams, "waste_stream_plans": plans})


def apply_forecast_totals(document: PlanDocument, totals: dict[str, float]) -> PlanDocument:
    """Overwrite every plan's ``forecast_qty`` with the stream's total.

    Recompute-by-sum: a stream with no included items gets ``None``. Manual
    quantities are left untouched.
    """
    plans = []
    for plan in document.waste_stream_plans:
        total = totals.get(plan.category, 0.0)
        plans.append(
            plan.model_copy(
                update={
                    "forecast_qty": total if total > 0 else None,
                    "forecast_unit": plan.forecast_unit or FORECAST_UNIT,
                }
            )
        )
    return document.model_copy(update={"waste_stream_plans": plans})


# ── Orchestration ─────────────────────────────────────────────────────────────


def sync_allocation(
    project_id: str,
    items: ForecastItemStore,
    catalog: StreamCatalog,
    plans: PlanDocumentStore,
) -> SyncResult:
    """Recompute allocation for a project and persist derived values.

    Reads items, the stream catalog and the plan document; derives every
    value; then writes computed fields per item and the updated plan
    document. Store exceptions propagate unchanged.

    Args:
        project_id: Project to synchronise.
        items:      Forecast item store.
        catalog:    Stream catalog.
        plans:      Plan document store.

    Returns:
        ``SyncResult`` with per-stream totals, bucket counts and any streams
        added to the plan document.
    """
    forecast_items = items.list_items(project_id)
    streams = catalog.active_streams()

    allocations = compute_allocation(forecast_items, streams)
    result = summarise_allocation(allocations)

    document = migrate_plan_document(plans.read(project_id), project_id=project_id)
    added: list[str] = []
    for total in result.stream_totals:
        before = len(document.waste_streams), len(document.waste_stream_plans)
        document = ensure_stream_in_document(document, total.stream_key)
        if (len(document.waste_streams), len(document.waste_stream_plans)) != before:
            added.append(total.stream_key)
    document = apply_forecast_totals(document, result.totals_by_stream())

    logger.info(
        "Allocation for %s | included=%d unallocated=%d conversion_required=%d streams=%d",
        project_id,
        result.included_count,
        result.unallocated_count,
        result.conversion_required_count,
        len(result.stream_totals),
    )

    for a in allocations:
        logger.debug(
            "Item %s -> %s (%s) qty=%.4f kg=%s",
            a.item_id, a.stream_key, a.bucket, a.waste_qty, a.waste_kg,
        )
        items.update_computed_fields(a.item_id, a.waste_qty, a.waste_kg)
    plans.write(project_id, document)

    return result.model_copy(update={"added_streams": added})
