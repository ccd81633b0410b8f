"""
Recommendation rule engine.

Each rule is a pure function ``RuleContext -> list[RecommendationDraft]``.
``RULES`` lists them in emission order:

  data quality        fix_unit_conversions, allocate_forecast_items,
                      select_disposal_method
  source separation   separate_top_recyclables, separate_major_streams,
                      separate_plasterboard
  facilities          choose_facility
  procurement         reduce_at_source, tighten_ordering_margin
  site logistics      bin_layout_plan, collection_cadence,
                      contamination_controls

``build_recommendations()`` runs every rule, assigns ids, deduplicates by
title (first emitted wins) and sorts by priority (high → low), then by
tonnes diverted (desc). The sort is stable, so ties keep emission order.

Ids are ``"<slug(category-title)>-<n>"`` where ``n`` is the 1-based emission
position within this call. Two calls over the same input return identical
ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from site_waste_planner.config import ImpactConfig
from site_waste_planner.models.recommendation import ApplyAction, EstimatedImpact, Recommendation
from site_waste_planner.models.strategy import StreamPlan
from site_waste_planner.strategy.classification import is_plasterboard_name, is_recyclable
from site_waste_planner.strategy.impact import impact_ranges
from site_waste_planner.taxonomy.stream_defaults import CATCH_ALL_STREAM
from site_waste_planner.taxonomy.stream_taxonomy import (
    PRIORITY_ORDER,
    ApplyActionType,
    Confidence,
    HandlingMode,
    OutcomeClass,
    Priority,
    RecommendationCategory,
    RecommendedHandling,
)
from site_waste_planner.utils.numbers import percent
from site_waste_planner.utils.text import slugify

logger = logging.getLogger(__name__)

# ── Thresholds ────────────────────────────────────────────────────────────────
UNKNOWN_OUTCOME_PERCENT   = 20.0
CATCH_ALL_DOMINANT_PERCENT = 40.0
CATCH_ALL_HIGH_PERCENT    = 60.0
MAJOR_RECYCLABLE_TONNES   = 1.0
PLASTERBOARD_HIGH_TONNES  = 0.5
TOP_ITEMS_COUNT           = 5
TOP_ITEMS_PERCENT         = 50.0
HIGH_EXCESS_PERCENT       = 10.0
HIGH_EXCESS_MIN_TONNES    = 0.5
BIN_LAYOUT_MIN_STREAMS    = 3
CONTAMINATION_MIN_TONNES  = 0.5


@dataclass(frozen=True)
class ItemMass:
    """Forecast item facts the procurement rules look at."""

    item_id: str
    item_name: Optional[str]
    stream_key: Optional[str]
    excess_percent: float
    waste_kg: Optional[float]


@dataclass(frozen=True)
class RecommendationDraft:
    """A recommendation before id assignment."""

    title: str
    description: str
    priority: Priority
    confidence: Confidence
    category: RecommendationCategory
    triggers: tuple[str, ...]
    impact: EstimatedImpact = field(default_factory=EstimatedImpact)
    steps: tuple[str, ...] = ()
    apply_action: Optional[ApplyAction] = None


@dataclass
class RuleContext:
    """Everything the rules see about one plan."""

    stream_plans: list[StreamPlan]
    total_tonnes: float
    unknown_tonnes: float
    unallocated_count: int
    conversion_required_count: int
    items: list[ItemMass]
    impact: ImpactConfig = field(default_factory=ImpactConfig)
    catch_all_stream: str = CATCH_ALL_STREAM

    @property
    def catch_all_tonnes(self) -> float:
        return sum(s.total_tonnes for s in self.stream_plans if s.stream_name == self.catch_all_stream)

    @property
    def catch_all_percent(self) -> float:
        return percent(self.catch_all_tonnes, self.total_tonnes)

    def non_catch_all(self) -> list[StreamPlan]:
        return [s for s in self.stream_plans if s.stream_name != self.catch_all_stream]

    def diversion_impact(self, tonnes: float) -> EstimatedImpact:
        cost, carbon = impact_ranges(tonnes, self.impact)
        return EstimatedImpact(
            tonnes_diverted=tonnes,
            diversion_delta_percent=percent(tonnes, self.total_tonnes),
            cost_savings_range=cost,
            carbon_savings_range=carbon,
            notes=[self.impact.approximate_note],
        )


Rule = Callable[[RuleContext], list[RecommendationDraft]]


# ── Data quality ──────────────────────────────────────────────────────────────


def fix_unit_conversions(ctx: RuleContext) -> list[RecommendationDraft]:
    n = ctx.conversion_required_count
    if n <= 0:
        return []
    return [RecommendationDraft(
        title="Fix unit conversions",
        description=(
            f"{n} forecast item(s) use units that cannot be converted to weight "
            "(e.g. m³ or m without density or kg/m). Add a conversion factor so "
            "these items contribute to stream totals."
        ),
        priority=Priority.HIGH,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.DATA_QUALITY,
        triggers=("forecast_items_conversion_required",),
        impact=EstimatedImpact(notes=[
            "Add density (kg/m³) or linear mass (kg/m) so tonnes can be calculated.",
        ]),
        steps=(
            "Review forecast items with non-weight units (m³, m).",
            "Add density or kg/m where applicable, or switch the unit to tonne.",
            "Re-run the allocation sync so stream totals include these items.",
        ),
    )]


def allocate_forecast_items(ctx: RuleContext) -> list[RecommendationDraft]:
    n = ctx.unallocated_count
    if n <= 0:
        return []
    return [RecommendationDraft(
        title="Allocate forecast items to streams",
        description=(
            f"{n} forecast item(s) have no waste stream assigned and are not "
            "included in diversion totals."
        ),
        priority=Priority.HIGH if ctx.total_tonnes > 0 else Priority.MEDIUM,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.DATA_QUALITY,
        triggers=("unallocated_forecast_items",),
        impact=EstimatedImpact(notes=[
            "Including these will improve accuracy of tonnes and diversion %.",
        ]),
        steps=(
            f"Assign a waste stream to each item (e.g. by material type, or {ctx.catch_all_stream}).",
            "Re-run the allocation sync; stream totals update automatically.",
        ),
        apply_action=ApplyAction(
            type=ApplyActionType.ALLOCATE_TO_MIXED,
            payload={"unallocated_count": n, "stream_name": ctx.catch_all_stream},
        ),
    )]


def select_disposal_method(ctx: RuleContext) -> list[RecommendationDraft]:
    unknown_pct = percent(ctx.unknown_tonnes, ctx.total_tonnes)
    has_unknown = any(s.intended_outcome is OutcomeClass.UNKNOWN for s in ctx.stream_plans)
    if not (unknown_pct > UNKNOWN_OUTCOME_PERCENT and has_unknown):
        return []
    return [RecommendationDraft(
        title="Select disposal method for streams",
        description=(
            f"{unknown_pct:.0f}% of tonnes have no disposal method set. Select "
            "Recycle/Reuse/Landfill per stream to fix diversion reporting."
        ),
        priority=Priority.MEDIUM,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.DATA_QUALITY,
        triggers=("outcomes_unknown_high_percent",),
        impact=EstimatedImpact(notes=["Accurate outcomes enable diversion % and facility reporting."]),
        steps=("Select a disposal method for each waste stream plan.",),
        apply_action=ApplyAction(type=ApplyActionType.SET_OUTCOME, payload={}),
    )]


# ── Source separation ─────────────────────────────────────────────────────────


def separate_top_recyclables(ctx: RuleContext) -> list[RecommendationDraft]:
    mixed_pct = ctx.catch_all_percent
    if not (mixed_pct > CATCH_ALL_DOMINANT_PERCENT and ctx.total_tonnes > 0):
        return []
    top = sorted(
        (
            s for s in ctx.non_catch_all()
            if is_recyclable(s.intended_outcome)
            and s.total_tonnes > 0
            and s.handling_mode is HandlingMode.MIXED
        ),
        key=lambda s: -s.total_tonnes,
    )[:3]
    if not top:
        return []
    names = ", ".join(s.stream_name for s in top)
    tonnes = sum(s.total_tonnes for s in top)
    return [RecommendationDraft(
        title=f"Separate top recyclable streams to reduce {ctx.catch_all_stream}",
        description=(
            f"{ctx.catch_all_stream} is {mixed_pct:.0f}% of total waste. Separating the "
            f"top 1-3 recyclable streams ({names}) onsite will improve diversion and "
            "often reduce cost."
        ),
        priority=Priority.HIGH if mixed_pct >= CATCH_ALL_HIGH_PERCENT else Priority.MEDIUM,
        confidence=Confidence.MEDIUM,
        category=RecommendationCategory.SOURCE_SEPARATION,
        triggers=("mixed_cd_over_40_percent",),
        impact=ctx.diversion_impact(tonnes),
        steps=(
            "Add a dedicated skip or bin for each stream.",
            "Site signage and toolbox talk on what goes where.",
            "Assign facilities for each separated stream.",
        ),
    )]


def separate_major_streams(ctx: RuleContext) -> list[RecommendationDraft]:
    drafts = []
    for s in ctx.non_catch_all():
        if not (
            s.total_tonnes >= MAJOR_RECYCLABLE_TONNES
            and is_recyclable(s.intended_outcome)
            and s.recommended_handling is RecommendedHandling.SEPARATE
            and s.handling_mode is not HandlingMode.SEPARATED
        ):
            continue
        share = s.total_tonnes / ctx.total_tonnes
        if share >= 0.2:
            priority = Priority.HIGH
        elif share >= 0.05:
            priority = Priority.MEDIUM
        else:
            priority = Priority.LOW
        drafts.append(RecommendationDraft(
            title=f"Separate {s.stream_name} onsite",
            description=(
                f"This stream has {s.total_tonnes:.1f} t and is recyclable; separating "
                "it onsite improves diversion and reporting."
            ),
            priority=priority,
            confidence=Confidence.HIGH,
            category=RecommendationCategory.SOURCE_SEPARATION,
            triggers=("recyclable_stream_1t_plus", "recommended_handling_separate"),
            impact=ctx.diversion_impact(s.total_tonnes),
            steps=(
                f"Provide a dedicated skip or bin for {s.stream_name}.",
                "Add clear signage and include in toolbox talks.",
                f"Assign a facility that accepts {s.stream_name}.",
            ),
            apply_action=ApplyAction(
                type=ApplyActionType.MARK_STREAM_SEPARATE,
                payload={"stream_name": s.stream_name},
            ),
        ))
    return drafts


def separate_plasterboard(ctx: RuleContext) -> list[RecommendationDraft]:
    plasterboard = next((s for s in ctx.non_catch_all() if is_plasterboard_name(s.stream_name)), None)
    if plasterboard is None or ctx.total_tonnes <= 0:
        return []
    if ctx.catch_all_percent <= CATCH_ALL_DOMINANT_PERCENT:
        return []
    if plasterboard.handling_mode is HandlingMode.SEPARATED:
        return []
    tonnes = plasterboard.total_tonnes
    return [RecommendationDraft(
        title="Separate plasterboard / GIB",
        description=(
            "Plasterboard separation is a common council and client target. "
            f"{ctx.catch_all_stream} dominates; a dedicated plasterboard stream "
            "improves diversion and compliance."
        ),
        priority=Priority.HIGH if tonnes >= PLASTERBOARD_HIGH_TONNES else Priority.MEDIUM,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.SOURCE_SEPARATION,
        triggers=("plasterboard_present", "mixed_dominates"),
        impact=EstimatedImpact(
            tonnes_diverted=tonnes,
            diversion_delta_percent=percent(tonnes, ctx.total_tonnes),
            notes=[ctx.impact.approximate_note],
        ),
        steps=(
            "Dedicated plasterboard skip; keep it dry and separate from general mixed waste.",
            "Signage and brief trades on the plasterboard-only bin.",
            "Select a facility that accepts plasterboard.",
        ),
        apply_action=ApplyAction(
            type=ApplyActionType.CREATE_STREAM,
            payload={"stream_name": plasterboard.stream_name},
        ),
    )]


# ── Facility optimisation ─────────────────────────────────────────────────────


def choose_facility(ctx: RuleContext) -> list[RecommendationDraft]:
    drafts = []
    for s in ctx.stream_plans:
        if s.total_tonnes <= 0 or s.assigned_facility_id:
            continue
        share = s.total_tonnes / ctx.total_tonnes
        drafts.append(RecommendationDraft(
            title=f"Choose facility for {s.stream_name}",
            description=(
                f"No facility is assigned for {s.stream_name}. Select a destination with "
                "the best diversion rate to enable reporting and maximise recovery."
            ),
            priority=Priority.HIGH if share >= 0.2 else Priority.MEDIUM,
            confidence=Confidence.HIGH,
            category=RecommendationCategory.FACILITY_OPTIMISATION,
            triggers=("facility_missing",),
            impact=EstimatedImpact(notes=[
                "Required for compliant reporting; choose a facility that accepts this stream.",
            ]),
            steps=(
                "Select a partner and facility for this stream.",
                "Confirm accepted stream types with the facility.",
            ),
            apply_action=ApplyAction(
                type=ApplyActionType.SET_FACILITY,
                payload={
                    "stream_name": s.stream_name,
                    "facility_id": s.recommended_facility_id,
                    "partner_id": s.recommended_partner_id,
                },
            ),
        ))
    return drafts


# ── Procurement reduction ─────────────────────────────────────────────────────


def reduce_at_source(ctx: RuleContext) -> list[RecommendationDraft]:
    allocated = [i for i in ctx.items if i.stream_key and i.waste_kg is not None and i.waste_kg >= 0]
    total_t = sum(i.waste_kg for i in allocated) / 1000
    if total_t <= 0:
        return []
    top = sorted(allocated, key=lambda i: -i.waste_kg)[:TOP_ITEMS_COUNT]
    top_pct = percent(sum(i.waste_kg for i in top) / 1000, total_t)
    if top_pct <= TOP_ITEMS_PERCENT:
        return []
    return [RecommendationDraft(
        title="Reduce waste at source (top forecast items)",
        description=(
            f"The top {TOP_ITEMS_COUNT} forecast items contribute {top_pct:.0f}% of "
            "forecast waste. Review ordering margins, take-back schemes and supplier "
            "packaging to reduce at source."
        ),
        priority=Priority.MEDIUM,
        confidence=Confidence.MEDIUM,
        category=RecommendationCategory.PROCUREMENT_REDUCTION,
        triggers=("top_5_items_over_50_percent_forecast",),
        impact=EstimatedImpact(notes=[
            "Reducing overordering and packaging can lower tonnes and cost; impact "
            "depends on contracts and suppliers.",
        ]),
        steps=(
            "Review the top forecast items (quantity and excess %).",
            "Discuss ordering margins, design for less waste and take-back with procurement.",
            "Update quantities or excess % as practices change.",
        ),
    )]


def tighten_ordering_margin(ctx: RuleContext) -> list[RecommendationDraft]:
    major = [
        i for i in ctx.items
        if i.excess_percent > HIGH_EXCESS_PERCENT
        and i.waste_kg is not None
        and i.waste_kg / 1000 >= HIGH_EXCESS_MIN_TONNES
    ]
    if not major:
        return []
    return [RecommendationDraft(
        title="Tighten ordering margin on major items",
        description=(
            f"{len(major)} forecast item(s) have excess over {HIGH_EXCESS_PERCENT:.0f}% and "
            "contribute significant waste. Review design and ordering to reduce surplus."
        ),
        priority=Priority.MEDIUM,
        confidence=Confidence.MEDIUM,
        category=RecommendationCategory.PROCUREMENT_REDUCTION,
        triggers=("excess_percent_over_10_major_items",),
        impact=EstimatedImpact(notes=[
            "Lower excess % or quantities will reduce forecast tonnes and disposal cost.",
        ]),
        steps=(
            "Review excess % and quantity for high-waste items.",
            "Align with design and estimating; adjust where overordering is identified.",
        ),
    )]


# ── Site logistics ────────────────────────────────────────────────────────────


def bin_layout_plan(ctx: RuleContext) -> list[RecommendationDraft]:
    n = sum(1 for s in ctx.non_catch_all() if s.recommended_handling is RecommendedHandling.SEPARATE)
    if n < BIN_LAYOUT_MIN_STREAMS:
        return []
    return [RecommendationDraft(
        title="Document bin layout plan",
        description=(
            f"With {n} separated streams, a clear bin layout plan reduces contamination "
            "and supports collection efficiency."
        ),
        priority=Priority.MEDIUM,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.SITE_LOGISTICS,
        triggers=("three_plus_separated_streams",),
        impact=EstimatedImpact(notes=["Improves segregation compliance and reduces contamination."]),
        steps=(
            "Mark bin and skip locations by stream on the site plan.",
            "Include the layout in site induction and toolbox talks.",
            "Review access for collection vehicles.",
        ),
    )]


def collection_cadence(ctx: RuleContext) -> list[RecommendationDraft]:
    total = ctx.total_tonnes
    if total <= 0:
        return []
    if total >= 10:
        cadence = "weekly"
    elif total >= 3:
        cadence = "weekly or fortnightly"
    else:
        cadence = "fortnightly or as needed"
    return [RecommendationDraft(
        title="Set collection cadence",
        description=(
            f"Estimated {total:.1f} t total waste. Recommend {cadence} collection to "
            "avoid overflow and maintain segregation."
        ),
        priority=Priority.LOW,
        confidence=Confidence.MEDIUM,
        category=RecommendationCategory.SITE_LOGISTICS,
        triggers=("total_tonnes_estimated",),
        impact=EstimatedImpact(notes=[
            "Match cadence to fill rates and contract; adjust as the project progresses.",
        ]),
        steps=(
            "Agree collection frequency with the waste contractor.",
            "Document it in the waste management and logistics plan.",
        ),
    )]


def contamination_controls(ctx: RuleContext) -> list[RecommendationDraft]:
    if not any(
        is_recyclable(s.intended_outcome) and s.total_tonnes >= CONTAMINATION_MIN_TONNES
        for s in ctx.non_catch_all()
    ):
        return []
    return [RecommendationDraft(
        title="Contamination controls for recycling streams",
        description=(
            "High-value recycling streams (e.g. metals, timber, plasterboard) benefit "
            "from clear signage and bin lids to reduce contamination."
        ),
        priority=Priority.MEDIUM,
        confidence=Confidence.HIGH,
        category=RecommendationCategory.SITE_LOGISTICS,
        triggers=("recyclable_streams_present",),
        impact=EstimatedImpact(notes=["Reduces reject loads and improves recovery rates."]),
        steps=(
            "Signage at each recycling bin stating what goes in.",
            "Lids or covers where practical to prevent mixing.",
            "Brief trades regularly on contamination.",
        ),
    )]


RULES: tuple[Rule, ...] = (
    fix_unit_conversions,
    allocate_forecast_items,
    select_disposal_method,
    separate_top_recyclables,
    separate_major_streams,
    separate_plasterboard,
    choose_facility,
    reduce_at_source,
    tighten_ordering_margin,
    bin_layout_plan,
    collection_cadence,
    contamination_controls,
)


# ── Assembly ──────────────────────────────────────────────────────────────────


def assign_ids(drafts: list[RecommendationDraft]) -> list[Recommendation]:
    """Turn drafts into recommendations with per-call positional ids."""
    return [
        Recommendation(
            id=f"{slugify(f'{d.category}-{d.title}')}-{n}",
            title=d.title,
            description=d.description,
            priority=d.priority,
            confidence=d.confidence,
            category=d.category,
            triggers=list(d.triggers),
            estimated_impact=d.impact,
            implementation_steps=list(d.steps),
            apply_action=d.apply_action,
        )
        for n, d in enumerate(drafts, start=1)
    ]


def dedupe_and_rank(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Drop repeated titles (first wins), then sort by priority and tonnes."""
    seen: set[str] = set()
    unique: list[Recommendation] = []
    for r in recommendations:
        if r.title in seen:
            continue
        seen.add(r.title)
        unique.append(r)
    return sorted(unique, key=lambda r: (PRIORITY_ORDER[r.priority], -r.tonnes_impacted))


def build_recommendations(
    ctx: RuleContext,
    rules: tuple[Rule, ...] = RULES,
) -> list[Recommendation]:
    """Run every rule over ``ctx`` and return the final ranked list."""
    drafts: list[RecommendationDraft] = []
    for rule in rules:
        emitted = rule(ctx)
        if emitted:
            logger.debug("Rule %s emitted %d recommendation(s)", rule.__name__, len(emitted))
        drafts.extend(emitted)
    return dedupe_and_rank(assign_ids(drafts))
