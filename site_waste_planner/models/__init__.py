"""
Pydantic models shared across the planner.

Modules
-------
forecast       : ForecastLineItem - per-item forecast inputs + computed mass.
stream         : StreamDefinition - stream catalog entries.
facility       : FacilityCandidate, DistanceEntry, Project - reference data.
plan_document  : StreamPlanInput, PlanDocument + migrate_plan_document().
allocation     : StreamTotal, SyncResult.
optimiser      : OptimiserWeights, StreamDemand, OptimiserResultItem.
recommendation : Recommendation, EstimatedImpact, ApplyAction.
strategy       : StreamPlan, StrategySummary, StrategyNarrative, StrategyResult.
meta           : RunMetadata - planning-stage audit record.
"""
