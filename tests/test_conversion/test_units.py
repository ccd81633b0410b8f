"""
Tests for quantity conversion (conversion/units.py).

What we test
------------
1. waste_in_unit(): excess share of an ordered quantity.
2. to_mass_kg(): each unit family, missing factors, invalid quantities.
3. plan_quantity_to_tonnes(): mass units, area via thickness, litres,
   volumes, and unconvertible inputs.
"""

from __future__ import annotations

import math

import pytest

from site_waste_planner.conversion.units import (
    normalise_unit,
    plan_quantity_to_tonnes,
    to_mass_kg,
    waste_in_unit,
)


class TestWasteInUnit:
    def test_excess_share(self):
        assert waste_in_unit(30, 10) == pytest.approx(3.0)

    def test_zero_excess(self):
        assert waste_in_unit(500, 0) == 0.0

    def test_non_finite_inputs_give_zero(self):
        assert waste_in_unit(math.nan, 10) == 0.0
        assert waste_in_unit(10, math.inf) == 0.0


class TestToMassKg:
    def test_tonnes(self):
        assert to_mass_kg(100, "tonne") == pytest.approx(100_000)

    @pytest.mark.parametrize("unit", ["t", "T", " tonnes ", "Tonne"])
    def test_tonne_aliases_case_insensitive(self, unit):
        assert to_mass_kg(2, unit) == pytest.approx(2000)

    def test_kilograms_pass_through(self):
        assert to_mass_kg(42.5, "kg") == pytest.approx(42.5)

    def test_metres_with_linear_factor(self):
        assert to_mass_kg(3, "m", linear_mass_factor=5) == pytest.approx(15)

    def test_metres_without_factor_is_none(self):
        assert to_mass_kg(10, "m") is None

    def test_cubic_metres_with_density(self):
        assert to_mass_kg(10, "m3", density=1048) == pytest.approx(10_480)

    def test_cubic_metres_zero_density_is_none(self):
        assert to_mass_kg(10, "m3", density=0) is None

    def test_negative_quantity_is_none(self):
        assert to_mass_kg(-1, "kg") is None

    def test_unknown_unit_is_none(self):
        assert to_mass_kg(5, "pallet") is None

    def test_zero_quantity_is_zero_mass(self):
        assert to_mass_kg(0, "m", linear_mass_factor=5) == 0.0


class TestPlanQuantityToTonnes:
    def test_tonnes(self):
        assert plan_quantity_to_tonnes(2.5, "t", None) == pytest.approx(2.5)

    def test_kilograms(self):
        assert plan_quantity_to_tonnes(750, "kg", None) == pytest.approx(0.75)

    def test_cubic_metres(self):
        assert plan_quantity_to_tonnes(12, "m3", 1200) == pytest.approx(14.4)

    def test_area_uses_thickness(self):
        assert plan_quantity_to_tonnes(100, "m2", 120, 0.01) == pytest.approx(0.12)

    def test_area_without_thickness_is_none(self):
        assert plan_quantity_to_tonnes(100, "m2", 120) is None

    def test_litres(self):
        assert plan_quantity_to_tonnes(500, "L", 1000) == pytest.approx(0.5)

    def test_volume_without_density_is_none(self):
        assert plan_quantity_to_tonnes(5, "m3", None) is None

    def test_missing_quantity_is_none(self):
        assert plan_quantity_to_tonnes(None, "t", None) is None


def test_normalise_unit():
    assert normalise_unit("  M3 ") == "m3"
    assert normalise_unit(None) == ""
