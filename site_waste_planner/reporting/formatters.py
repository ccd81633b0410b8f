"""
ASCII terminal formatters for CLI output.

Every formatter takes result models and returns a plain multi-line string
for ``typer.echo()``. No third-party dependencies.
"""

from __future__ import annotations

import textwrap

from site_waste_planner.models.allocation import SyncResult
from site_waste_planner.models.optimiser import OptimiserResultItem
from site_waste_planner.models.strategy import StrategyResult

_WRAP = 76


def _wrap(text: str, indent: str = "  ") -> list[str]:
    return textwrap.wrap(text, width=_WRAP, initial_indent=indent, subsequent_indent=indent)


def _km(value: float | None) -> str:
    return f"{value:.1f}" if value is not None else "-"


# ── Allocation ────────────────────────────────────────────────────────────────


def format_sync_result(result: SyncResult, project_id: str) -> str:
    lines = [
        "",
        f"=== Allocation sync: {project_id} ===",
        f"  Items:               {result.item_count}",
        f"  Included:            {result.included_count}",
        f"  Unallocated:         {result.unallocated_count}",
        f"  Conversion required: {result.conversion_required_count}",
    ]
    if result.added_streams:
        lines.append(f"  Streams added:       {', '.join(result.added_streams)}")
    lines.append("")
    if not result.stream_totals:
        lines.append("  (no forecast tonnage allocated)")
        return "\n".join(lines)
    lines.append(f"    {'Stream':<36}  {'Tonnes':>10}")
    lines.append("    " + "-" * 48)
    for t in result.stream_totals:
        lines.append(f"    {t.stream_key:<36}  {t.total_tonnes:>10.3f}")
    lines.append("    " + "-" * 48)
    lines.append(f"    {'Total':<36}  {result.total_tonnes:>10.3f}")
    return "\n".join(lines)


# ── Optimiser ─────────────────────────────────────────────────────────────────


def format_optimiser_results(results: list[OptimiserResultItem], project_id: str) -> str:
    """Table of recommended facilities, one row per stream.

    ::

        Stream                     Tonnes  Facility                    km   Score
        ------------------------------------------------------------------------
        Metals                       9.00  Metals Recovery East      12.4    1.00
    """
    lines = ["", f"=== Facility optimiser: {project_id} ==="]
    if not results:
        lines.append("  (no streams in plan)")
        return "\n".join(lines)
    header = f"    {'Stream':<26}  {'Tonnes':>7}  {'Facility':<26}  {'km':>6}  {'Score':>5}"
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for r in results:
        facility = r.recommended_facility_name or "(none)"
        lines.append(
            f"    {r.stream_name[:26]:<26}  {r.planned_tonnes:>7.2f}  {facility[:26]:<26}  "
            f"{_km(r.distance_km):>6}  {r.score:>5.2f}"
        )
        lines.append(f"      {r.reason.primary}")
    return "\n".join(lines)


# ── Strategy ──────────────────────────────────────────────────────────────────


def format_strategy_summary(result: StrategyResult) -> str:
    s = result.summary
    lines = [
        "",
        f"=== Waste strategy: {result.project_id} ===",
        f"  Total estimated:  {s.total_estimated_tonnes:.2f} t across {s.streams_count} stream(s)",
        f"  Diversion:        {s.estimated_diversion_percent:.0f}%",
        f"  Landfill:         {s.estimated_landfill_percent:.0f}%",
        f"  Unknown outcome:  {s.estimated_unknown_percent:.0f}%",
        f"  Facilities used:  {s.facilities_utilised_count}",
    ]
    if result.conversion_fallback.used_fallback:
        lines.append(
            "  Default conversion factors used for: "
            + ", ".join(result.conversion_fallback.missing_keys)
        )
    return "\n".join(lines)


def format_stream_plans(result: StrategyResult) -> str:
    lines = ["", "  Stream plans:"]
    header = f"    {'Stream':<28}  {'Total t':>8}  {'Tier':<6}  {'Advice':<8}  {'Facility':<24}"
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for p in result.stream_plans:
        facility = p.recommended_facility_name or "-"
        lines.append(
            f"    {p.stream_name[:28]:<28}  {p.total_tonnes:>8.2f}  {p.significance.value:<6}  "
            f"{p.recommended_handling.value:<8}  {facility[:24]:<24}"
        )
    return "\n".join(lines)


def format_recommendations(result: StrategyResult, limit: int | None = None) -> str:
    recs = result.recommendations[:limit] if limit else result.recommendations
    lines = ["", "  Recommendations:"]
    if not recs:
        lines.append("    (none)")
        return "\n".join(lines)
    for i, r in enumerate(recs, start=1):
        lines.append(f"    {i:>2}. [{r.priority.value.upper():<6}] {r.title}")
        lines.extend(_wrap(r.description, indent="          "))
    return "\n".join(lines)


def format_narrative(result: StrategyResult) -> str:
    n = result.narrative
    lines = ["", "  Narrative:"]
    for paragraph in (n.summary_paragraph, n.facility_plan_paragraph, n.major_drivers_paragraph):
        lines.extend(_wrap(paragraph, indent="    "))
        lines.append("")
    return "\n".join(lines).rstrip()


def format_strategy_report(result: StrategyResult, limit: int | None = None) -> str:
    """Full terminal report: summary, stream table, recommendations, narrative."""
    return "\n".join([
        format_strategy_summary(result),
        format_stream_plans(result),
        format_recommendations(result, limit),
        format_narrative(result),
    ])
