"""
Planning run metadata: the audit trail.

Every planning-stage execution records a ``RunMetadata`` row with a complete
``config_snapshot`` so a run can be reproduced by restoring that config and
re-running against the same project data.

``RunMetadata`` is the only Pydantic model in the system that is NOT frozen:
``status``, ``rows_processed``, ``error_message`` and ``finished_at`` change
as the stage executes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_PLANNING_STAGES = frozenset({"sync_allocation", "optimise", "build_strategy"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Planning execution audit record.

    Attributes:
        run_id: Auto-assigned DB PK; ``None`` before insertion.
        run_slug: UUID4 string uniquely identifying this run.
        planning_stage: Which stage produced this record.
        project_id: Project the stage ran for.
        status: Current execution status.
        config_snapshot: ``AppConfig.model_dump()`` at run start.
        rows_processed: Items, streams or recommendations handled.
        error_message: Error description if ``status == "failed"``.
        started_at: UTC datetime when the run began.
        finished_at: UTC datetime when the run completed or failed.
    """

    model_config = ConfigDict(frozen=False)

    run_id: Optional[int] = None
    run_slug: str
    planning_stage: str
    project_id: Optional[str] = None
    status: str = "started"
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("planning_stage")
    @classmethod
    def validate_planning_stage(cls, v: str) -> str:
        if v not in VALID_PLANNING_STAGES:
            raise ValueError(
                f"Unknown planning_stage '{v}'. Must be one of {sorted(VALID_PLANNING_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v
