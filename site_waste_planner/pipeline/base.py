"""
Abstract base class for planning stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(project_id, **kwargs)`` is the sole public API.
  3. ``run()`` creates a ``RunMetadata`` record, calls ``_execute()``, and
     persists the record with its final status.
  4. ``_execute()`` does the stage's work and returns a row count. A stage
     keeps its domain result on ``self.last_result``.

Stages never swallow exceptions: a failure is recorded as
``status='failed'`` and re-raised.

Usage::

    stage = SyncAllocationStage(config=app_config)
    run = stage.run(project_id="proj-1")
    result = stage.last_result
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import uuid4

from site_waste_planner.config import AppConfig
from site_waste_planner.models.meta import RunMetadata
from site_waste_planner.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PlanningStage(ABC):
    """Abstract base for planning stages.

    Attributes:
        stage_name: A valid ``RunMetadata.planning_stage``.
        config: Application configuration for this run.
        db_path: SQLite database path (defaults to ``config.database.db_path``).
        last_result: Domain result of the most recent successful run.
    """

    stage_name: str

    def __init__(self, config: AppConfig, db_path: Optional[str] = None) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path
        self.last_result: Any = None

    def run(self, project_id: str, **kwargs: Any) -> RunMetadata:
        """Execute this stage for one project.

        Args:
            project_id: Project to plan.
            **kwargs: Stage-specific arguments passed to ``_execute()``.

        Returns:
            ``RunMetadata`` with final ``status``, ``rows_processed`` and
            ``finished_at`` set.

        Raises:
            Exception: Whatever ``_execute()`` raised, after the failed run
                has been recorded.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            planning_stage=self.stage_name,
            project_id=project_id,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        logger.info(
            "Stage [%s] starting | project=%s run_slug=%s",
            self.stage_name, project_id, run.run_slug,
        )

        try:
            rows = self._execute(run=run, project_id=project_id, **kwargs)
            run.status = "success"
            run.rows_processed = rows
            run.finished_at = utcnow()
            logger.info(
                "Stage [%s] completed | rows=%d | run_slug=%s",
                self.stage_name, rows, run.run_slug,
            )

        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = utcnow()
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
            )
            self._persist_run(run)
            raise

        self._persist_run(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, project_id: str, **kwargs: Any) -> int:
        """Stage-specific work; returns the number of rows handled."""
        ...

    def _persist_run(self, run: RunMetadata) -> None:
        """Write or update the run record in its own transaction.

        Errors are logged, not raised, so an audit failure never masks the
        stage's own error.
        """
        try:
            from site_waste_planner.db.connection import get_connection
            from site_waste_planner.db.repositories.run_repo import RunMetadataRepository

            with get_connection(
                self.db_path,
                wal_mode=self.config.database.wal_mode,
                busy_timeout_ms=self.config.database.busy_timeout_ms,
            ) as conn:
                repo = RunMetadataRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata for run_slug=%s: %s",
                run.run_slug, exc,
            )

    def _connect(self):
        from site_waste_planner.db.connection import get_connection

        return get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        )
