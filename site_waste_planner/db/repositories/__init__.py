"""
SQLite repositories.

Modules
-------
base              : BaseRepository - shared execute/fetch helpers.
project_repo      : ProjectRepository            (ProjectDirectory)
stream_repo       : StreamRepository             (StreamCatalog)
facility_repo     : FacilityRepository           (FacilityDirectory)
forecast_item_repo: ForecastItemRepository       (ForecastItemStore)
distance_repo     : DistanceRepository           (→ DistanceCache per project)
plan_document_repo: PlanDocumentRepository       (PlanDocumentStore)
run_repo          : RunMetadataRepository        (planning audit trail)
"""
