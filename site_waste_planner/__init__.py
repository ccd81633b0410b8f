"""
Site Waste Planner.

Deterministic planning core for construction-site waste management:

  conversion  → canonical mass from per-item forecast quantities
  allocation  → per-stream forecast totals, written back to the plan document
  optimiser   → weighted multi-criteria facility scoring and selection
  strategy    → per-stream plans, ranked recommendations and narrative text
"""

__version__ = "0.1.0"
