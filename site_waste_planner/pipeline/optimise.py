"""
OptimiseStage - recommend a facility for every stream in a project's plan.

Flow
----
  1. Read the plan document, stream catalog, project and distance cache.
  2. Planned tonnes per stream = manual + forecast (same rules as the
     strategy builder).
  3. Eligible facilities per stream from the directory, enriched with
     cached distances.
  4. run_optimiser() with the configured weights, or per-call overrides.
  5. Optionally write optimiser_results.csv / .json to ``output_dir``.

Returns the number of streams optimised.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from site_waste_planner.db.repositories.distance_repo import DistanceRepository
from site_waste_planner.db.repositories.facility_repo import FacilityRepository
from site_waste_planner.db.repositories.forecast_item_repo import ForecastItemRepository
from site_waste_planner.db.repositories.plan_document_repo import PlanDocumentRepository
from site_waste_planner.db.repositories.project_repo import ProjectRepository
from site_waste_planner.db.repositories.stream_repo import StreamRepository
from site_waste_planner.models.meta import RunMetadata
from site_waste_planner.models.optimiser import OptimiserWeights, StreamDemand
from site_waste_planner.optimiser.facility_optimiser import eligible_candidates, run_optimiser
from site_waste_planner.pipeline.base import PlanningStage
from site_waste_planner.strategy.builder import PlanningSnapshot, manual_tonnes, read_snapshot, stream_names

logger = logging.getLogger(__name__)


def stream_demands(snapshot: PlanningSnapshot) -> list[StreamDemand]:
    """Planned tonnage for every stream in the plan document."""
    catalog = {s.name: s for s in snapshot.streams if s.is_active}
    demands = []
    for name in stream_names(snapshot.document):
        plan = snapshot.document.plan_for(name)
        forecast = plan.forecast_qty if plan is not None and plan.forecast_qty is not None else 0.0
        demands.append(
            StreamDemand(stream_name=name, planned_tonnes=manual_tonnes(plan, catalog.get(name)) + forecast)
        )
    return demands


class OptimiseStage(PlanningStage):
    """Score eligible facilities and pick one per stream."""

    stage_name = "optimise"

    def _execute(
        self,
        run: RunMetadata,
        project_id: str,
        weights: Optional[OptimiserWeights] = None,
        output_dir: Optional[Path] = None,
        **kwargs: Any,
    ) -> int:
        """Run the optimiser for ``project_id``.

        Args:
            run:        In-progress RunMetadata.
            project_id: Project to optimise.
            weights:    Overrides ``config.optimiser`` weights.
            output_dir: If given, export results there.

        Returns:
            Number of streams optimised.
        """
        opt = self.config.optimiser
        weights = weights or OptimiserWeights(
            distance=opt.distance_weight,
            cost=opt.cost_weight,
            carbon=opt.carbon_weight,
            diversion=opt.diversion_weight,
        )

        with self._connect() as conn:
            snapshot = read_snapshot(
                project_id,
                items=ForecastItemRepository(conn),
                catalog=StreamRepository(conn),
                plans=PlanDocumentRepository(conn),
                projects=ProjectRepository(conn),
            )
            directory = FacilityRepository(conn)
            distances = DistanceRepository(conn).for_project(project_id)
            demands = stream_demands(snapshot)
            eligible = {
                d.stream_name: eligible_candidates(d.stream_name, directory, distances, snapshot.region)
                for d in demands
            }

        results = run_optimiser(demands, eligible, weights, opt.alternatives_count)
        self.last_result = results

        if output_dir is not None:
            from site_waste_planner.reporting.export import write_optimiser_results

            paths = write_optimiser_results(results, Path(output_dir), project_id)
            logger.info("Optimiser results written: %s", [str(p) for p in paths])

        return len(results)
