"""
Controlled vocabularies and reference defaults.

Modules
-------
stream_taxonomy : StrEnums for handling, outcomes, priorities, categories.
stream_defaults : per-stream densities, units and template outcomes.
"""
