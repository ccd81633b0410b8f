"""
Repository for ``plan_documents``.

Documents are stored as JSON exactly as written. ``read()`` returns the raw
mapping, legacy shapes included; callers canonicalise it with
``migrate_plan_document()``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.models.plan_document import PlanDocument


class PlanDocumentRepository(BaseRepository):
    """Read/write access to ``plan_documents``. Satisfies ``PlanDocumentStore``."""

    def read(self, project_id: str) -> Optional[dict[str, Any]]:
        row = self.fetchone("SELECT document FROM plan_documents WHERE project_id = ?;", (project_id,))
        if row is None:
            return None
        return json.loads(row["document"])

    def write(self, project_id: str, document: PlanDocument) -> None:
        self.write_raw(project_id, document.to_storage(), document.schema_version)

    def write_raw(self, project_id: str, raw: dict[str, Any], schema_version: int = 1) -> None:
        """Store an arbitrary document, e.g. a legacy one from a seed bundle."""
        self.execute(
            """
            INSERT INTO plan_documents (project_id, schema_version, document)
            VALUES (?, ?, ?)
            ON CONFLICT(project_id) DO UPDATE SET
                schema_version = excluded.schema_version,
                document       = excluded.document,
                updated_at     = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (project_id, schema_version, json.dumps(raw)),
        )
