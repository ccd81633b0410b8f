"""
Quantity conversion: the single source of truth for mass derivation.

Two entry points:

``waste_in_unit(quantity, excess_percent)``
    Waste share of an ordered quantity, still in the item's own unit.

``to_mass_kg(waste_qty, unit, linear_mass_factor=None, density=None)``
    Waste quantity → kilograms, or ``None`` when the unit cannot be converted
    with the factors supplied. ``None`` is a first-class result: callers
    classify such items as "conversion required" rather than guessing.

``plan_quantity_to_tonnes()`` converts a manually entered plan quantity
(t, kg, m3, m2, L) to tonnes by reducing area and litres to cubic metres and
delegating to ``to_mass_kg``.

Unit matching is case-insensitive after trimming.
"""

from __future__ import annotations

from typing import Optional

from site_waste_planner.utils.numbers import as_finite, non_negative_or_none

TONNE_UNITS = frozenset({"t", "tonne", "tonnes"})
KILOGRAM_UNITS = frozenset({"kg"})
LINEAR_UNITS = frozenset({"m", "metre", "metres", "meter", "meters"})
VOLUME_UNITS = frozenset({"m3", "m³"})
AREA_UNITS = frozenset({"m2", "m²"})
LITRE_UNITS = frozenset({"l"})

# Manual-entry units whose conversion depends on a density or linear factor.
FACTOR_DEPENDENT_UNITS = LINEAR_UNITS | VOLUME_UNITS | AREA_UNITS


def normalise_unit(unit: Optional[str]) -> str:
    return (unit or "").strip().lower()


def waste_in_unit(quantity: float, excess_percent: float) -> float:
    """Return ``quantity * excess_percent / 100``; 0 if either is non-finite.

    >>> waste_in_unit(30, 10)
    3.0
    """
    q = as_finite(quantity)
    pct = as_finite(excess_percent)
    if q is None or pct is None:
        return 0.0
    return q * pct / 100


def to_mass_kg(
    waste_qty: float,
    unit: Optional[str],
    linear_mass_factor: Optional[float] = None,
    density: Optional[float] = None,
) -> Optional[float]:
    """Convert a waste quantity to kilograms.

    Args:
        waste_qty: Quantity in ``unit`` (must be finite and ``>= 0``).
        unit: Unit label; tonne family, ``kg``, metre family, or ``m3``.
        linear_mass_factor: kg per metre; required (``>= 0``) for lengths.
        density: kg per m³; required (``> 0``) for volumes.

    Returns:
        Mass in kg, or ``None`` if the quantity is invalid, the unit is
        unknown, or the required factor is missing.
    """
    qty = non_negative_or_none(waste_qty)
    if qty is None:
        return None

    u = normalise_unit(unit)
    if u in TONNE_UNITS:
        return qty * 1000
    if u in KILOGRAM_UNITS:
        return qty
    if u in LINEAR_UNITS:
        factor = non_negative_or_none(linear_mass_factor)
        return qty * factor if factor is not None else None
    if u in VOLUME_UNITS:
        rho = as_finite(density)
        return qty * rho if rho is not None and rho > 0 else None
    return None


def plan_quantity_to_tonnes(
    qty: Optional[float],
    unit: Optional[str],
    density_kg_m3: Optional[float],
    thickness_m: Optional[float] = None,
) -> Optional[float]:
    """Convert a manual plan quantity to tonnes.

    Area quantities need ``thickness_m`` (``>= 0``) to become a volume;
    litres are ``/1000`` to m³. Volumes then use ``density_kg_m3``.

    Returns:
        Tonnes, or ``None`` if the quantity is invalid, the unit unknown, or
        a required factor missing.
    """
    amount = non_negative_or_none(qty)
    if amount is None:
        return None

    u = normalise_unit(unit)
    if u in AREA_UNITS:
        thickness = non_negative_or_none(thickness_m)
        if thickness is None:
            return None
        amount, u = amount * thickness, "m3"
    elif u in LITRE_UNITS:
        amount, u = amount / 1000, "m3"

    kg = to_mass_kg(amount, u, density=density_kg_m3)
    return kg / 1000 if kg is not None else None
