"""
Waste stream catalog entries.

A ``StreamDefinition`` is the canonical name of a waste stream plus optional
conversion defaults used when a forecast item carries no density or linear
mass factor of its own.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from site_waste_planner.utils.numbers import non_negative_or_none, positive_or_none


class StreamDefinition(BaseModel):
    """Active waste stream from the stream catalog.

    Attributes:
        name: Canonical stream label, e.g. ``"Plasterboard / GIB"``.
        default_density: kg per m³ fallback for volume-measured items.
        default_linear_mass_factor: kg per metre fallback for
            length-measured items.
        is_active: Inactive streams are ignored by allocation.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    default_density: Optional[float] = None
    default_linear_mass_factor: Optional[float] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Stream name must not be blank.")
        return v

    @field_validator("default_density", mode="before")
    @classmethod
    def coerce_density(cls, v: Any) -> Optional[float]:
        return positive_or_none(v)

    @field_validator("default_linear_mass_factor", mode="before")
    @classmethod
    def coerce_linear_factor(cls, v: Any) -> Optional[float]:
        return non_negative_or_none(v)

    @property
    def has_conversion_factor(self) -> bool:
        """Whether the catalog configures any non-mass conversion for this stream."""
        return self.default_density is not None or self.default_linear_mass_factor is not None
