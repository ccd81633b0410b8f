"""
Quantity conversion: forecast and manual quantities → canonical mass.

Modules
-------
units : waste_in_unit() + to_mass_kg() + plan_quantity_to_tonnes() - pure
        functions, no DB or I/O.
"""
