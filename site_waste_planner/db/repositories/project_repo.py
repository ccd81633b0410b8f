"""Repository for ``projects``."""

from __future__ import annotations

from typing import Optional

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.models.facility import Project


class ProjectRepository(BaseRepository):
    """Read/write access to ``projects``. Satisfies ``ProjectDirectory``."""

    def upsert(self, project: Project) -> None:
        self.execute(
            """
            INSERT INTO projects (project_id, name, region, primary_partner_id)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(project_id) DO UPDATE SET
                name               = excluded.name,
                region             = excluded.region,
                primary_partner_id = excluded.primary_partner_id;
            """,
            (project.project_id, project.name, project.region, project.primary_partner_id),
        )

    def get(self, project_id: str) -> Optional[Project]:
        row = self.fetchone("SELECT * FROM projects WHERE project_id = ?;", (project_id,))
        if row is None:
            return None
        return Project(
            project_id=row["project_id"],
            name=row["name"],
            region=row["region"],
            primary_partner_id=row["primary_partner_id"],
        )

    def list_ids(self) -> list[str]:
        rows = self.fetchall("SELECT project_id FROM projects ORDER BY project_id;")
        return [r["project_id"] for r in rows]
