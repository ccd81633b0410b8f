"""
Export helpers for spreadsheets and downstream report rendering.

All writers create parent directories and return the written ``Path``.
CSV exports are flat (no nested values) so they open directly in Excel or
any BI tool. Nested fields such as impact ranges become ``_low`` / ``_high``
column pairs; list fields are joined with ``" | "``.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional

from site_waste_planner.models.allocation import SyncResult
from site_waste_planner.models.optimiser import OptimiserResultItem
from site_waste_planner.models.recommendation import Recommendation
from site_waste_planner.models.strategy import StrategyResult, StreamPlan

LIST_SEPARATOR = " | "


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: Optional[list[str]] = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    Row dicts.
        path:       Destination file.
        fieldnames: Column order; defaults to the first record's keys.

    Returns:
        ``path`` as written. An empty ``records`` list writes an empty file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str, ensure_ascii=False), encoding="utf-8")
    return path


# ── Flatteners ────────────────────────────────────────────────────────────────


def _range(value: Optional[tuple[float, float]]) -> tuple[object, object]:
    return (value[0], value[1]) if value is not None else ("", "")


def flatten_recommendations_for_export(recommendations: list[Recommendation]) -> list[dict]:
    """One row per recommendation, in ranked order.

    Each row carries ``rank`` (1-based), identity and classification
    columns, ``tonnes_diverted``, ``diversion_delta_percent``, the cost and
    carbon ranges as ``*_low`` / ``*_high`` pairs, the joined triggers and
    steps, and the apply action type.
    """
    rows: list[dict] = []
    for rank, r in enumerate(recommendations, start=1):
        impact = r.estimated_impact
        cost_low, cost_high = _range(impact.cost_savings_range)
        carbon_low, carbon_high = _range(impact.carbon_savings_range)
        rows.append(
            {
                "rank":                    rank,
                "id":                      r.id,
                "title":                   r.title,
                "priority":                r.priority.value,
                "confidence":              r.confidence.value,
                "category":                r.category.value,
                "tonnes_diverted":         impact.tonnes_diverted if impact.tonnes_diverted is not None else "",
                "diversion_delta_percent": (
                    impact.diversion_delta_percent if impact.diversion_delta_percent is not None else ""
                ),
                "cost_saving_low":         cost_low,
                "cost_saving_high":        cost_high,
                "carbon_saving_low":       carbon_low,
                "carbon_saving_high":      carbon_high,
                "triggers":                LIST_SEPARATOR.join(r.triggers),
                "implementation_steps":    LIST_SEPARATOR.join(r.implementation_steps),
                "apply_action":            r.apply_action.type.value if r.apply_action else "",
                "description":             r.description,
            }
        )
    return rows


def flatten_stream_plans_for_export(stream_plans: list[StreamPlan]) -> list[dict]:
    """One row per stream plan."""
    return [
        {
            "stream_id":             s.stream_id,
            "stream_name":           s.stream_name,
            "manual_tonnes":         round(s.manual_tonnes, 4),
            "forecast_tonnes":       round(s.forecast_tonnes, 4),
            "total_tonnes":          round(s.total_tonnes, 4),
            "significance":          s.significance.value,
            "handling_mode":         s.handling_mode.value,
            "recommended_handling":  s.recommended_handling.value,
            "intended_outcome":      s.intended_outcome_display,
            "outcome_class":         s.intended_outcome.value,
            "assigned_facility_id":  s.assigned_facility_id or "",
            "recommended_facility":  s.recommended_facility_name or "",
            "recommended_partner":   s.recommended_partner_name or "",
            "distance_km":           s.distance_km if s.distance_km is not None else "",
            "duration_min":          s.duration_min if s.duration_min is not None else "",
            "rationale":             LIST_SEPARATOR.join(s.rationale),
        }
        for s in stream_plans
    ]


def flatten_optimiser_results_for_export(results: list[OptimiserResultItem]) -> list[dict]:
    """One row per stream; alternates are joined by facility name."""
    return [
        {
            "stream_name":          r.stream_name,
            "planned_tonnes":       round(r.planned_tonnes, 4),
            "recommended_facility": r.recommended_facility_name or "",
            "facility_id":          r.recommended_facility_id or "",
            "score":                round(r.score, 4),
            "distance_km":          r.distance_km if r.distance_km is not None else "",
            "duration_min":         r.duration_min if r.duration_min is not None else "",
            "estimated_cost":       round(r.estimated_cost, 2) if r.estimated_cost is not None else "",
            "estimated_carbon":     round(r.estimated_carbon, 4) if r.estimated_carbon is not None else "",
            "eligible_count":       r.reason.eligibility_count,
            "alternatives":         LIST_SEPARATOR.join(a.facility_name for a in r.alternatives),
            "reason":               r.reason.primary,
        }
        for r in results
    ]


def flatten_sync_result_for_export(result: SyncResult) -> list[dict]:
    """One row per stream total, in tonnes."""
    return [
        {"stream_key": t.stream_key, "total_tonnes": round(t.total_tonnes, 4)}
        for t in result.stream_totals
    ]


# ── Bundled writers ───────────────────────────────────────────────────────────


def write_strategy_result(result: StrategyResult, output_dir: Path) -> list[Path]:
    """Write ``strategy_<project>.json`` plus stream plan and recommendation CSVs."""
    stem = result.project_id or "project"
    return [
        export_to_json(result.model_dump(mode="json"), output_dir / f"strategy_{stem}.json"),
        export_to_csv(
            flatten_stream_plans_for_export(result.stream_plans),
            output_dir / f"stream_plans_{stem}.csv",
        ),
        export_to_csv(
            flatten_recommendations_for_export(result.recommendations),
            output_dir / f"recommendations_{stem}.csv",
        ),
    ]


def write_optimiser_results(
    results: list[OptimiserResultItem],
    output_dir: Path,
    project_id: str,
) -> list[Path]:
    """Write ``optimiser_<project>.json`` and ``optimiser_<project>.csv``."""
    return [
        export_to_json([r.model_dump(mode="json") for r in results], output_dir / f"optimiser_{project_id}.json"),
        export_to_csv(
            flatten_optimiser_results_for_export(results),
            output_dir / f"optimiser_{project_id}.csv",
        ),
    ]
