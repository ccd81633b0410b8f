"""
Repository for the ``facilities`` directory.

``accepted_streams`` is stored as a JSON array of stream labels. Filtering
by accepted stream happens after decoding; the directory is small reference
data.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Optional

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.models.facility import FacilityCandidate


def _row_to_facility(row: sqlite3.Row) -> FacilityCandidate:
    return FacilityCandidate(
        facility_id=row["facility_id"],
        name=row["name"],
        partner_id=row["partner_id"],
        partner_name=row["partner_name"],
        region=row["region"],
        accepted_streams=tuple(json.loads(row["accepted_streams"] or "[]")),
        cost_per_tonne=row["cost_per_tonne"],
        carbon_per_tonne=row["carbon_per_tonne"],
        diversion_rating=row["diversion_rating"],
    )


class FacilityRepository(BaseRepository):
    """Read/write access to ``facilities``. Satisfies ``FacilityDirectory``.

    Rows carry no distance: distances are per project and come from
    ``DistanceRepository``.
    """

    def upsert(self, facility: FacilityCandidate) -> None:
        self.execute(
            """
            INSERT INTO facilities (
                facility_id, name, partner_id, partner_name, region,
                accepted_streams, cost_per_tonne, carbon_per_tonne, diversion_rating
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(facility_id) DO UPDATE SET
                name             = excluded.name,
                partner_id       = excluded.partner_id,
                partner_name     = excluded.partner_name,
                region           = excluded.region,
                accepted_streams = excluded.accepted_streams,
                cost_per_tonne   = excluded.cost_per_tonne,
                carbon_per_tonne = excluded.carbon_per_tonne,
                diversion_rating = excluded.diversion_rating;
            """,
            (
                facility.facility_id,
                facility.name,
                facility.partner_id,
                facility.partner_name,
                facility.region,
                json.dumps(list(facility.accepted_streams)),
                facility.cost_per_tonne,
                facility.carbon_per_tonne,
                facility.diversion_rating,
            ),
        )

    def by_id(self, facility_id: str) -> Optional[FacilityCandidate]:
        row = self.fetchone("SELECT * FROM facilities WHERE facility_id = ?;", (facility_id,))
        return _row_to_facility(row) if row else None

    def list_all(self) -> list[FacilityCandidate]:
        return [_row_to_facility(r) for r in self.fetchall("SELECT * FROM facilities ORDER BY name;")]

    def facilities_accepting_stream(
        self,
        stream_name: str,
        region: Optional[str] = None,
        partner_id: Optional[str] = None,
    ) -> list[FacilityCandidate]:
        """Facilities accepting ``stream_name``, optionally narrowed.

        Args:
            stream_name: Exact stream label.
            region: Only facilities in this region, if given.
            partner_id: Only facilities run by this partner, if given.

        Returns:
            Matching facilities ordered by name.
        """
        sql = "SELECT * FROM facilities WHERE 1 = 1"
        params: list[str] = []
        if region:
            sql += " AND region = ?"
            params.append(region)
        if partner_id:
            sql += " AND partner_id = ?"
            params.append(partner_id)
        rows = self.fetchall(sql + " ORDER BY name;", tuple(params))
        return [f for f in (_row_to_facility(r) for r in rows) if f.accepts(stream_name)]
