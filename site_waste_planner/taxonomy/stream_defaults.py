"""
Reference defaults for NZ construction waste streams.

Keys are exact stream labels. Densities (kg/m³) are typical loose bulk
densities used to convert manually-entered volumes to tonnes when a plan does
not carry its own density override. ``default_thickness_m`` applies only to
streams usually measured by area (m²).

Usage example::

    from site_waste_planner.taxonomy.stream_defaults import density_for_stream

    density_for_stream("Metals")       # 63.0
    density_for_stream("Unobtainium")  # 1000.0 (fallback)

This module has NO imports from any other ``site_waste_planner`` package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

CATCH_ALL_STREAM = "Mixed C&D"

FALLBACK_DENSITY_KG_M3 = 1000.0
FALLBACK_PLAN_UNIT = "m3"

PLAN_UNITS = ("kg", "t", "m3", "m2", "L")


@dataclass(frozen=True)
class StreamDefault:
    density_kg_m3: float
    default_unit: str
    default_thickness_m: Optional[float] = None


STREAM_DEFAULTS: dict[str, StreamDefault] = {
    "Mixed C&D":                            StreamDefault(1200, "m3"),
    "Timber (treated)":                     StreamDefault(178, "m3"),
    "Timber (untreated)":                   StreamDefault(178, "m3"),
    "Metals":                               StreamDefault(63, "m3"),
    "Cardboard":                            StreamDefault(38, "m3"),
    "Hard plastics":                        StreamDefault(72, "m3"),
    "Soft plastics (wrap/strapping)":       StreamDefault(72, "m3"),
    "E-waste (cables/lighting/appliances)": StreamDefault(300, "m3"),
    "Ceiling tiles":                        StreamDefault(150, "m2", 0.015),
    "Insulation":                           StreamDefault(100, "m3"),
    "Asphalt / roading material":           StreamDefault(1500, "m3"),
    "Concrete (unreinforced)":              StreamDefault(900, "m3"),
    "Concrete (reinforced)":                StreamDefault(1048, "m3"),
    "Concrete / masonry":                   StreamDefault(1048, "m3"),
    "Masonry / bricks":                     StreamDefault(1500, "m3"),
    "Roofing materials":                    StreamDefault(120, "m2", 0.01),
    "Hazardous waste (general)":            StreamDefault(225, "m3"),
    "Cleanfill soil":                       StreamDefault(1500, "m3"),
    "Soil / spoil (cleanfill if verified)": StreamDefault(1500, "m3"),
    "Contaminated soil":                    StreamDefault(1500, "m3"),
    "PVC pipes / services":                 StreamDefault(140, "m3"),
    "HDPE pipes / services":                StreamDefault(100, "m3"),
    "Plasterboard / GIB":                   StreamDefault(238, "m3"),
    "Glass":                                StreamDefault(411, "m3"),
    "Paints/adhesives/chemicals":           StreamDefault(1000, "L"),
    "Carpet / carpet tiles":                StreamDefault(200, "m2", 0.01),
    "Green waste / vegetation":             StreamDefault(225, "m3"),
    "Packaging (mixed)":                    StreamDefault(38, "m3"),
}


def density_for_stream(stream_name: str) -> float:
    """Default density (kg/m³) for a stream label; 1000 when unknown."""
    entry = STREAM_DEFAULTS.get(stream_name)
    return float(entry.density_kg_m3) if entry else FALLBACK_DENSITY_KG_M3


def default_unit_for_stream(stream_name: str) -> str:
    """Default manual-entry unit for a stream label; ``m3`` when unknown."""
    entry = STREAM_DEFAULTS.get(stream_name)
    return entry.default_unit if entry else FALLBACK_PLAN_UNIT


def default_thickness_for_stream(stream_name: str) -> Optional[float]:
    """Default thickness (m) for area-measured streams, else ``None``."""
    entry = STREAM_DEFAULTS.get(stream_name)
    return entry.default_thickness_m if entry else None


def default_outcomes_for_stream(stream_name: str) -> list[str]:
    """Template intended outcomes for a newly created stream plan.

    Matching is by keyword on the lowercased label, first match wins.
    """
    lower = stream_name.lower()
    if "metal" in lower or "cardboard" in lower:
        return ["Recycle"]
    if "timber" in lower and "untreated" in lower:
        return ["Reuse", "Recycle"]
    if "timber" in lower and "treated" in lower:
        return ["Recover"]
    if any(k in lower for k in ("concrete", "masonry", "brick", "asphalt", "roading")):
        return ["Recycle", "Recover"]
    if "soil" in lower or "cleanfill" in lower:
        return ["Cleanfill"]
    if any(k in lower for k in ("soft plastic", "wrap", "strapping")):
        return ["Recycle"]
    if "mixed c&d" in lower or "mixed c & d" in lower:
        return ["Recover", "Landfill"]
    return ["Recycle"]
