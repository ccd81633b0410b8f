"""
Repository for ``facility_distances``.

Distances are cached per (project, facility). ``for_project()`` returns a
``DistanceMap`` which is the ``DistanceCache`` the engine consumes.
"""

from __future__ import annotations

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.interfaces import DistanceMap
from site_waste_planner.models.facility import DistanceEntry


class DistanceRepository(BaseRepository):
    """Read/write access to ``facility_distances``."""

    def upsert(self, project_id: str, entry: DistanceEntry) -> None:
        self.execute(
            """
            INSERT INTO facility_distances (project_id, facility_id, distance_km, duration_min)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(project_id, facility_id) DO UPDATE SET
                distance_km  = excluded.distance_km,
                duration_min = excluded.duration_min;
            """,
            (project_id, entry.facility_id, entry.distance_km, entry.duration_min),
        )

    def for_project(self, project_id: str) -> DistanceMap:
        rows = self.fetchall(
            "SELECT * FROM facility_distances WHERE project_id = ? ORDER BY facility_id;",
            (project_id,),
        )
        return DistanceMap([
            DistanceEntry(
                facility_id=r["facility_id"],
                distance_km=r["distance_km"],
                duration_min=r["duration_min"],
            )
            for r in rows
        ])
