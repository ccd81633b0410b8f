"""
Strategy builder: per-stream plans, recommendations and narrative.

Modules
-------
classification    : significance tiers, outcome classes, handling advice.
facility_selection: two-phase facility pick + effective distance.
impact            : approximate cost / carbon saving ranges.
rules             : recommendation rule engine (12 rules) + ranking.
narrative         : text blocks for the written plan.
builder           : build_strategy() - snapshot → StrategyResult.
"""
