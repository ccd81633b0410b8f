"""
SyncAllocationStage - recompute forecast allocation for a project.

Everything runs inside one ``get_connection()`` block: item computed fields
and the plan document are committed together or not at all.

Returns the number of forecast items processed.
"""

from __future__ import annotations

import logging
from typing import Any

from site_waste_planner.allocation.synchronizer import sync_allocation
from site_waste_planner.db.repositories.forecast_item_repo import ForecastItemRepository
from site_waste_planner.db.repositories.plan_document_repo import PlanDocumentRepository
from site_waste_planner.db.repositories.stream_repo import StreamRepository
from site_waste_planner.models.meta import RunMetadata
from site_waste_planner.pipeline.base import PlanningStage

logger = logging.getLogger(__name__)


class SyncAllocationStage(PlanningStage):
    """Forecast items → per-stream forecast tonnes in the plan document."""

    stage_name = "sync_allocation"

    def _execute(self, run: RunMetadata, project_id: str, **kwargs: Any) -> int:
        with self._connect() as conn:
            result = sync_allocation(
                project_id,
                items=ForecastItemRepository(conn),
                catalog=StreamRepository(conn),
                plans=PlanDocumentRepository(conn),
            )
        if result.added_streams:
            logger.info("Streams added to plan for %s: %s", project_id, result.added_streams)
        self.last_result = result
        return result.item_count
