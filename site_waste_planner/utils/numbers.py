"""
Numeric coercion helpers.

Malformed numbers (``None``, NaN, ±inf, non-numeric strings, negatives where a
quantity is expected) are coerced at the boundary instead of raising. These
helpers are the only place that decision is made.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def as_finite(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def non_negative_or_none(value: Any) -> Optional[float]:
    """Finite and ``>= 0``, else ``None``."""
    number = as_finite(value)
    return number if number is not None and number >= 0 else None


def positive_or_none(value: Any) -> Optional[float]:
    """Finite and ``> 0``, else ``None``."""
    number = as_finite(value)
    return number if number is not None and number > 0 else None


def non_negative_or_zero(value: Any) -> float:
    """Finite and ``>= 0``, else ``0.0``."""
    return non_negative_or_none(value) or 0.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def percent(part: float, whole: float) -> float:
    """``part / whole * 100``, or ``0.0`` when ``whole`` is not positive."""
    return (part / whole) * 100 if whole > 0 else 0.0
