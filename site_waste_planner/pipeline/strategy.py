"""
BuildStrategyStage - build the full waste strategy for a project.

Read-only against the database. When ``output_dir`` is given the result is
exported as strategy JSON plus stream-plan and recommendation CSVs.

Returns the number of recommendations produced.
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
from site_waste_planner.pipeline.base import PlanningStage
from site_waste_planner.strategy.builder import build_strategy

logger = logging.getLogger(__name__)


class BuildStrategyStage(PlanningStage):
    """Stream plans, ranked recommendations and narrative for a project."""

    stage_name = "build_strategy"

    def _execute(
        self,
        run: RunMetadata,
        project_id: str,
        output_dir: Optional[Path] = None,
        **kwargs: Any,
    ) -> int:
        with self._connect() as conn:
            result = build_strategy(
                project_id,
                items=ForecastItemRepository(conn),
                catalog=StreamRepository(conn),
                directory=FacilityRepository(conn),
                plans=PlanDocumentRepository(conn),
                distances=DistanceRepository(conn).for_project(project_id),
                projects=ProjectRepository(conn),
                planning=self.config.planning,
                impact=self.config.impact,
            )
        self.last_result = result

        if output_dir is not None:
            from site_waste_planner.reporting.export import write_strategy_result

            paths = write_strategy_result(result, Path(output_dir))
            logger.info("Strategy written: %s", [str(p) for p in paths])

        return len(result.recommendations)
