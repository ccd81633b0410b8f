"""
Auditable planning stages.

Modules
-------
base    : PlanningStage ABC - RunMetadata bookkeeping around _execute().
sync    : SyncAllocationStage - forecast items → plan document totals.
optimise: OptimiseStage       - facility recommendation per stream.
strategy: BuildStrategyStage  - full waste strategy + optional export.
"""
