"""
Strategy builder: plan document + forecast + facilities → StrategyResult.

Usage flow
----------
1. build_strategy(project_id, items=..., catalog=..., directory=...,
                  distances=..., plans=..., projects=...)
     Reads one snapshot from the collaborators.

2. build_strategy_from_snapshot(snapshot, directory, distances, ...)
     a. build_stream_plan() per stream in the plan document
     b. compute_diversion_totals() → StrategySummary
     c. rules.build_recommendations()
     d. narrative.build_narrative()

Nothing is written back. Building twice from the same snapshot returns an
identical result, recommendation ids included.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from site_waste_planner.allocation.synchronizer import compute_allocation, summarise_allocation
from site_waste_planner.config import ImpactConfig, PlanningConfig
from site_waste_planner.conversion.units import (
    FACTOR_DEPENDENT_UNITS,
    normalise_unit,
    plan_quantity_to_tonnes,
)
from site_waste_planner.interfaces import (
    DistanceCache,
    FacilityDirectory,
    ForecastItemStore,
    PlanDocumentStore,
    ProjectDirectory,
    StreamCatalog,
)
from site_waste_planner.models.facility import Project
from site_waste_planner.models.forecast import ForecastLineItem
from site_waste_planner.models.plan_document import (
    DEFAULT_OUTCOME,
    PlanDocument,
    StreamPlanInput,
    migrate_plan_document,
)
from site_waste_planner.models.strategy import (
    ConversionFallbackInfo,
    StrategyResult,
    StrategySummary,
    StreamAction,
    StreamPlan,
)
from site_waste_planner.models.stream import StreamDefinition
from site_waste_planner.strategy.classification import (
    classify_significance,
    is_recyclable,
    outcome_class,
    recommend_handling,
)
from site_waste_planner.strategy.facility_selection import effective_distance, pick_best_facility
from site_waste_planner.strategy.narrative import build_narrative
from site_waste_planner.strategy.rules import ItemMass, RuleContext, build_recommendations
from site_waste_planner.taxonomy.stream_defaults import (
    default_thickness_for_stream,
    default_unit_for_stream,
    density_for_stream,
)
from site_waste_planner.taxonomy.stream_taxonomy import (
    DestinationMode,
    HandlingMode,
    OutcomeClass,
    RecommendedHandling,
    Significance,
    StreamActionType,
)
from site_waste_planner.utils.numbers import percent
from site_waste_planner.utils.text import stream_id_for

logger = logging.getLogger(__name__)

_SIGNIFICANCE_RATIONALE = {
    Significance.MAJOR: "Major stream (≥{major:g} t); prioritise separation.",
    Significance.MEDIUM: "Medium stream ({medium:g}-{major:g} t); separate if recyclable.",
    Significance.MINOR: "Minor stream (<{medium:g} t); mixed acceptable unless hazardous.",
}


@dataclass(frozen=True)
class PlanningSnapshot:
    """Everything read from the collaborators for one strategy build."""

    project_id: str
    document: PlanDocument
    streams: list[StreamDefinition] = field(default_factory=list)
    items: list[ForecastLineItem] = field(default_factory=list)
    project: Optional[Project] = None

    @property
    def region(self) -> Optional[str]:
        return self.project.region if self.project else None

    @property
    def primary_partner_id(self) -> Optional[str]:
        return self.project.primary_partner_id if self.project else None


# ── Quantities ────────────────────────────────────────────────────────────────


def manual_tonnes(plan: Optional[StreamPlanInput], stream: Optional[StreamDefinition] = None) -> float:
    """Manual tonnage for a plan entry, 0 when absent or unconvertible.

    ``manual_qty_tonnes`` wins. Otherwise ``estimated_qty`` is converted in
    its unit (or the stream's default unit) with the plan's density and
    thickness, then the catalog density, then the stream reference defaults.
    """
    if plan is None:
        return 0.0
    if plan.manual_qty_tonnes is not None:
        return plan.manual_qty_tonnes
    if plan.estimated_qty is None:
        return 0.0

    name = plan.category
    density = plan.density_kg_m3
    if density is None and stream is not None:
        density = stream.default_density
    if density is None:
        density = density_for_stream(name)
    thickness = plan.thickness_m if plan.thickness_m is not None else default_thickness_for_stream(name)

    tonnes = plan_quantity_to_tonnes(
        plan.estimated_qty,
        plan.unit or default_unit_for_stream(name),
        density,
        thickness,
    )
    return tonnes if tonnes is not None else 0.0


def used_conversion_fallback(plan: Optional[StreamPlanInput], stream: Optional[StreamDefinition]) -> bool:
    """Whether the manual quantity was converted with built-in defaults only."""
    if plan is None or plan.manual_qty_tonnes is not None or plan.estimated_qty is None:
        return False
    unit = normalise_unit(plan.unit or default_unit_for_stream(plan.category))
    if unit not in FACTOR_DEPENDENT_UNITS or plan.density_kg_m3 is not None:
        return False
    return stream is None or not stream.has_conversion_factor


# ── Stream plans ──────────────────────────────────────────────────────────────


def stream_names(document: PlanDocument) -> list[str]:
    """Streams to plan: the document's stream list, then any plan-only streams."""
    names = list(document.waste_streams)
    for plan in document.waste_stream_plans:
        if plan.category not in names:
            names.append(plan.category)
    return names


def _rationale(
    stream_name: str,
    significance: Significance,
    handling: RecommendedHandling,
    outcome: OutcomeClass,
    planning: PlanningConfig,
) -> list[str]:
    lines = [
        _SIGNIFICANCE_RATIONALE[significance].format(
            major=planning.major_stream_tonnes,
            medium=planning.medium_stream_tonnes,
        )
    ]
    if handling is RecommendedHandling.SEPARATE and is_recyclable(outcome):
        lines.append("Recyclable/reusable; recommend separate collection.")
    if stream_name == planning.catch_all_stream:
        lines.append(f"{planning.catch_all_stream} is the catch-all stream.")
    elif handling is RecommendedHandling.MIXED:
        lines.append("Keep in mixed stream to reduce complexity.")
    return lines


def _actions(
    stream_name: str,
    total: float,
    significance: Significance,
    handling: RecommendedHandling,
    has_facility: bool,
    catch_all_stream: str,
) -> list[StreamAction]:
    actions = []
    if not has_facility and total > 0:
        actions.append(StreamAction(
            type=StreamActionType.SELECT_FACILITY,
            label=f"Choose facility for {stream_name}",
            impact_hint="Enables tracking and diversion reporting.",
        ))
    if (
        handling is RecommendedHandling.SEPARATE
        and significance in (Significance.MAJOR, Significance.MEDIUM)
        and stream_name != catch_all_stream
    ):
        actions.append(StreamAction(
            type=StreamActionType.SEPARATE_STREAM,
            label=f"Separate {stream_name} onsite",
            impact_hint="Increases diversion and reduces mixed reliance.",
        ))
    return actions


def build_stream_plan(
    stream_name: str,
    plan: Optional[StreamPlanInput],
    snapshot: PlanningSnapshot,
    directory: FacilityDirectory,
    distances: Optional[DistanceCache],
    planning: PlanningConfig,
    stream: Optional[StreamDefinition] = None,
) -> StreamPlan:
    """Compute the plan for one stream.

    Args:
        stream_name: Stream label.
        plan:        The document's entry for the stream, if any.
        snapshot:    Project context (region, primary partner).
        directory:   Facility directory for the facility pick.
        distances:   Cached drive distances for the project.
        planning:    Catch-all name and significance thresholds.
        stream:      Catalog entry for the stream, if active.

    Returns:
        A ``StreamPlan`` with tonnages, classification, facility and advice.
    """
    manual = manual_tonnes(plan, stream)
    forecast = plan.forecast_qty if plan is not None and plan.forecast_qty is not None else 0.0
    total = manual + forecast

    outcomes = plan.intended_outcomes if plan is not None else []
    outcome = outcome_class(outcomes)
    significance = classify_significance(total, planning.major_stream_tonnes, planning.medium_stream_tonnes)
    handling = recommend_handling(stream_name, significance, outcome, planning.catch_all_stream)

    partner_id = None
    if plan is not None:
        partner_id = plan.partner_id or plan.waste_contractor_partner_id
    partner_id = partner_id or snapshot.primary_partner_id

    pick = pick_best_facility(
        stream_name,
        directory,
        existing_facility_id=plan.facility_id if plan is not None else None,
        region=snapshot.region,
        partner_id=partner_id,
        distances=distances,
    )

    assigned = plan.facility_id if plan is not None else None
    km, minutes = effective_distance(
        plan.distance_km if plan is not None else None,
        plan.duration_min if plan is not None else None,
        assigned,
        distances,
    )

    return StreamPlan(
        stream_id=stream_id_for(stream_name),
        stream_name=stream_name,
        manual_tonnes=manual,
        forecast_tonnes=forecast,
        total_tonnes=total,
        significance=significance,
        handling_mode=plan.handling_mode if plan is not None else HandlingMode.MIXED,
        recommended_handling=handling,
        assigned_facility_id=assigned,
        destination_mode=plan.destination_mode if plan is not None else DestinationMode.FACILITY,
        custom_destination_name=plan.custom_destination_name if plan is not None else None,
        custom_destination_address=plan.custom_destination_address if plan is not None else None,
        distance_km=km,
        duration_min=minutes,
        partner_id=partner_id,
        recommended_facility_id=pick.facility.facility_id if pick.facility else None,
        recommended_facility_name=pick.facility.name if pick.facility else None,
        recommended_partner_id=pick.partner_id,
        recommended_partner_name=pick.partner_name,
        intended_outcome=outcome,
        intended_outcome_display=outcomes[0] if outcomes else DEFAULT_OUTCOME,
        rationale=_rationale(stream_name, significance, handling, outcome, planning),
        actions=_actions(
            stream_name, total, significance, handling,
            pick.facility is not None, planning.catch_all_stream,
        ),
    )


# ── Summary ───────────────────────────────────────────────────────────────────


def compute_diversion_totals(stream_plans: list[StreamPlan]) -> tuple[float, float, float, float]:
    """Return (total, diverted, landfill, unknown) tonnes."""
    total = diverted = landfill = unknown = 0.0
    for s in stream_plans:
        total += s.total_tonnes
        if s.is_diverted:
            diverted += s.total_tonnes
        elif s.intended_outcome is OutcomeClass.LANDFILL:
            landfill += s.total_tonnes
        else:
            unknown += s.total_tonnes
    return total, diverted, landfill, unknown


def build_summary(stream_plans: list[StreamPlan]) -> StrategySummary:
    total, diverted, landfill, unknown = compute_diversion_totals(stream_plans)
    facilities = {s.assigned_facility_id for s in stream_plans if s.total_tonnes > 0 and s.assigned_facility_id}
    return StrategySummary(
        total_estimated_tonnes=total,
        estimated_diversion_percent=percent(diverted, total),
        estimated_landfill_percent=percent(landfill, total),
        estimated_unknown_percent=percent(unknown, total),
        streams_count=len(stream_plans),
        facilities_utilised_count=len(facilities),
    )


# ── Entry points ──────────────────────────────────────────────────────────────


def build_strategy_from_snapshot(
    snapshot: PlanningSnapshot,
    directory: FacilityDirectory,
    distances: Optional[DistanceCache] = None,
    planning: Optional[PlanningConfig] = None,
    impact: Optional[ImpactConfig] = None,
) -> StrategyResult:
    """Build a strategy from data already read from the stores."""
    planning = planning or PlanningConfig()
    impact = impact or ImpactConfig()
    catalog = {s.name: s for s in snapshot.streams if s.is_active}
    document = snapshot.document

    stream_plans: list[StreamPlan] = []
    missing_keys: list[str] = []
    for name in stream_names(document):
        plan = document.plan_for(name)
        stream = catalog.get(name)
        stream_plans.append(
            build_stream_plan(name, plan, snapshot, directory, distances, planning, stream)
        )
        if used_conversion_fallback(plan, stream):
            missing_keys.append(name)

    summary = build_summary(stream_plans)
    total, _, _, unknown = compute_diversion_totals(stream_plans)

    allocations = compute_allocation(snapshot.items, snapshot.streams)
    counts = summarise_allocation(allocations)
    excess_by_id = {i.item_id: i.excess_percent for i in snapshot.items}
    names_by_id = {i.item_id: i.item_name for i in snapshot.items}

    ctx = RuleContext(
        stream_plans=stream_plans,
        total_tonnes=total,
        unknown_tonnes=unknown,
        unallocated_count=counts.unallocated_count,
        conversion_required_count=counts.conversion_required_count,
        items=[
            ItemMass(
                item_id=a.item_id,
                item_name=names_by_id.get(a.item_id),
                stream_key=a.stream_key,
                excess_percent=excess_by_id.get(a.item_id, 0.0),
                waste_kg=a.waste_kg,
            )
            for a in allocations
        ],
        impact=impact,
        catch_all_stream=planning.catch_all_stream,
    )
    recommendations = build_recommendations(ctx)
    narrative = build_narrative(summary, stream_plans, recommendations, planning)

    logger.info(
        "Strategy for %s | streams=%d total=%.2ft diversion=%.1f%% recommendations=%d",
        snapshot.project_id,
        summary.streams_count,
        summary.total_estimated_tonnes,
        summary.estimated_diversion_percent,
        len(recommendations),
    )
    if missing_keys:
        logger.debug("Conversion fallback used for streams: %s", missing_keys)

    return StrategyResult(
        project_id=snapshot.project_id,
        summary=summary,
        stream_plans=stream_plans,
        recommendations=recommendations,
        narrative=narrative,
        conversion_fallback=ConversionFallbackInfo(
            used_fallback=bool(missing_keys),
            fallback_count=len(missing_keys),
            missing_keys=missing_keys,
        ),
    )


def read_snapshot(
    project_id: str,
    items: ForecastItemStore,
    catalog: StreamCatalog,
    plans: PlanDocumentStore,
    projects: Optional[ProjectDirectory] = None,
) -> PlanningSnapshot:
    """Read everything a strategy build needs from the stores."""
    return PlanningSnapshot(
        project_id=project_id,
        document=migrate_plan_document(plans.read(project_id), project_id=project_id),
        streams=catalog.active_streams(),
        items=items.list_items(project_id),
        project=projects.get(project_id) if projects is not None else None,
    )


def build_strategy(
    project_id: str,
    items: ForecastItemStore,
    catalog: StreamCatalog,
    directory: FacilityDirectory,
    plans: PlanDocumentStore,
    distances: Optional[DistanceCache] = None,
    projects: Optional[ProjectDirectory] = None,
    planning: Optional[PlanningConfig] = None,
    impact: Optional[ImpactConfig] = None,
) -> StrategyResult:
    """Build the waste strategy for a project.

    Read-only: the plan document and forecast items are not modified. Store
    exceptions propagate unchanged.
    """
    snapshot = read_snapshot(project_id, items, catalog, plans, projects)
    return build_strategy_from_snapshot(snapshot, directory, distances, planning, impact)
