"""
Narrative text for the written waste plan.

All text is derived from the computed summary, stream plans and ranked
recommendations; nothing here changes numbers.
"""

from __future__ import annotations

from site_waste_planner.config import PlanningConfig
from site_waste_planner.models.recommendation import Recommendation
from site_waste_planner.models.strategy import StrategyNarrative, StrategySummary, StreamPlan
from site_waste_planner.taxonomy.stream_taxonomy import OutcomeClass
from site_waste_planner.utils.numbers import percent

CATCH_ALL_DRIVER_PERCENT = 30.0

METHODOLOGY = (
    "Recommendations are generated deterministically from stream tonnages "
    "(manual + forecast), intended outcomes and facility options. Streams are "
    "classified by significance (major ≥{major:g} t, medium {medium:g}-{major:g} t, "
    "minor <{medium:g} t). Recyclable or reusable major and medium streams are "
    "recommended for separation; minor streams may remain mixed unless "
    "hazardous. Facility selection keeps an existing assigned facility that "
    "accepts the stream, otherwise it takes the best match by accepted stream "
    "type and diversion rate."
)

BASE_ASSUMPTIONS = (
    "Tonnages include both manual entries and forecast-allocated quantities.",
    "Diversion includes Recycle, Reuse, Recover, Cleanfill and Reduce outcomes; "
    "Landfill is counted separately.",
)

UNKNOWN_OUTCOME_ASSUMPTION = (
    "Streams with no intended outcome are reported as unknown and excluded "
    "from both diversion and landfill percentages."
)

NO_FACILITIES = (
    "No facilities are currently assigned; assign facilities per stream for "
    "compliant reporting."
)


def summary_paragraph(summary: StrategySummary) -> str:
    return (
        f"This waste strategy covers {summary.streams_count} stream(s) with an "
        f"estimated total of {summary.total_estimated_tonnes:.1f} tonnes. Estimated "
        f"diversion is {summary.estimated_diversion_percent:.0f}% with "
        f"{summary.estimated_landfill_percent:.0f}% to landfill. "
        f"{summary.facilities_utilised_count} facility/facilities are utilised "
        "across the streams."
    )


def facility_plan_paragraph(stream_plans: list[StreamPlan]) -> str:
    parts = [
        f"{s.stream_name}: {s.recommended_facility_name}"
        for s in stream_plans
        if s.recommended_facility_name
    ]
    if not parts:
        return NO_FACILITIES
    return "Facility plan: " + "; ".join(parts) + "."


def major_drivers_paragraph(
    summary: StrategySummary,
    stream_plans: list[StreamPlan],
    catch_all_stream: str,
) -> str:
    sentences = []
    if summary.estimated_diversion_percent > 0:
        diverted = sorted(
            (s for s in stream_plans if s.is_diverted and s.total_tonnes > 0),
            key=lambda s: -s.total_tonnes,
        )[:3]
        names = ", ".join(s.stream_name for s in diverted) or "recycling streams"
        sentences.append(
            f"Estimated diversion of {summary.estimated_diversion_percent:.0f}% is "
            f"driven by recyclable streams (e.g. {names}) and facility choices."
        )

    catch_all_tonnes = sum(s.total_tonnes for s in stream_plans if s.stream_name == catch_all_stream)
    catch_all_pct = percent(catch_all_tonnes, summary.total_estimated_tonnes)
    if catch_all_pct > CATCH_ALL_DRIVER_PERCENT:
        sentences.append(
            f"{catch_all_stream} represents {catch_all_pct:.0f}% of total waste; "
            "increasing source separation would improve diversion."
        )

    if not sentences:
        return (
            "Key drivers will depend on stream mix and facility selection; "
            "review the recommendations above."
        )
    return " ".join(sentences)


def build_narrative(
    summary: StrategySummary,
    stream_plans: list[StreamPlan],
    recommendations: list[Recommendation],
    planning: PlanningConfig,
) -> StrategyNarrative:
    """Assemble every narrative block for one strategy result.

    Args:
        summary:         Plan-wide headline numbers.
        stream_plans:    Computed stream plans. Any unknown-outcome plan,
            even at zero tonnes, adds the unknown-outcome assumption.
        recommendations: Final ranked recommendations.
        planning:        Catch-all name, thresholds and display limit.

    Returns:
        A ``StrategyNarrative``.
    """
    assumptions = list(BASE_ASSUMPTIONS)
    if any(s.intended_outcome is OutcomeClass.UNKNOWN for s in stream_plans):
        assumptions.append(UNKNOWN_OUTCOME_ASSUMPTION)

    return StrategyNarrative(
        summary_paragraph=summary_paragraph(summary),
        methodology_paragraph=METHODOLOGY.format(
            major=planning.major_stream_tonnes,
            medium=planning.medium_stream_tonnes,
        ),
        key_assumptions=assumptions,
        facility_plan_paragraph=facility_plan_paragraph(stream_plans),
        top_recommendations_bullets=[
            r.title for r in recommendations[: planning.recommendation_display_limit]
        ],
        major_drivers_paragraph=major_drivers_paragraph(summary, stream_plans, planning.catch_all_stream),
    )
