"""
Forecast line items.

A ``ForecastLineItem`` is one material line from the project's forecast: how
much is ordered, what share is expected to become waste, in which unit, and
which waste stream it is allocated to. Items are created and edited outside the
planning core; the allocation synchroniser owns the two computed fields.

Numeric inputs are coerced rather than rejected: non-finite or negative
quantities become 0, excess % is clamped to [0, 100], and unusable conversion
factors become ``None``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from site_waste_planner.utils.numbers import as_finite, clamp, non_negative_or_none, non_negative_or_zero
from site_waste_planner.utils.text import clean_str

DEFAULT_FORECAST_UNIT = "tonne"


class ForecastLineItem(BaseModel):
    """A single forecast material line.

    Attributes:
        item_id: Stable identifier assigned by the host.
        project_id: Owning project.
        item_name: Free-text description, e.g. ``"Timber framing 90x45"``.
        material_type: Optional material classification.
        quantity: Ordered quantity in ``unit`` (>= 0).
        excess_percent: Share of ``quantity`` expected as waste, 0-100.
        unit: Unit of ``quantity``; defaults to ``"tonne"``.
        linear_mass_factor: kg per metre, for length-measured items.
        density: kg per m³, for volume-measured items.
        allocated_stream_key: Waste stream name this item is allocated to.
        computed_waste_qty: Waste quantity in ``unit`` (last sync).
        computed_waste_kg: Waste mass in kg (last sync), ``None`` if
            conversion was impossible.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    project_id: str
    item_name: Optional[str] = None
    material_type: Optional[str] = None
    quantity: float = 0.0
    excess_percent: float = 0.0
    unit: str = DEFAULT_FORECAST_UNIT
    linear_mass_factor: Optional[float] = None
    density: Optional[float] = None
    allocated_stream_key: Optional[str] = None
    computed_waste_qty: Optional[float] = None
    computed_waste_kg: Optional[float] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> float:
        return non_negative_or_zero(v)

    @field_validator("excess_percent", mode="before")
    @classmethod
    def coerce_excess_percent(cls, v: Any) -> float:
        number = as_finite(v)
        return clamp(number, 0.0, 100.0) if number is not None else 0.0

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, v: Any) -> str:
        return clean_str(v) or DEFAULT_FORECAST_UNIT

    @field_validator("linear_mass_factor", mode="before")
    @classmethod
    def coerce_linear_mass_factor(cls, v: Any) -> Optional[float]:
        return non_negative_or_none(v)

    @field_validator("density", "computed_waste_qty", "computed_waste_kg", mode="before")
    @classmethod
    def coerce_optional_number(cls, v: Any) -> Optional[float]:
        return as_finite(v)

    @field_validator("allocated_stream_key", "item_name", "material_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return clean_str(v)

    @property
    def is_allocated(self) -> bool:
        return self.allocated_stream_key is not None
