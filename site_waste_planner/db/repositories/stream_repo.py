"""Repository for the ``waste_streams`` catalog."""

from __future__ import annotations

import sqlite3
from typing import Optional

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.models.stream import StreamDefinition


def _row_to_stream(row: sqlite3.Row) -> StreamDefinition:
    return StreamDefinition(
        name=row["name"],
        default_density=row["default_density"],
        default_linear_mass_factor=row["default_linear_mass_factor"],
        is_active=bool(row["is_active"]),
    )


class StreamRepository(BaseRepository):
    """Read/write access to ``waste_streams``. Satisfies ``StreamCatalog``."""

    def upsert(self, stream: StreamDefinition) -> None:
        """Insert a stream or update its conversion defaults by name."""
        self.execute(
            """
            INSERT INTO waste_streams (name, default_density, default_linear_mass_factor, is_active)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                default_density            = excluded.default_density,
                default_linear_mass_factor = excluded.default_linear_mass_factor,
                is_active                  = excluded.is_active;
            """,
            (
                stream.name,
                stream.default_density,
                stream.default_linear_mass_factor,
                int(stream.is_active),
            ),
        )

    def active_streams(self) -> list[StreamDefinition]:
        rows = self.fetchall("SELECT * FROM waste_streams WHERE is_active = 1 ORDER BY name;")
        return [_row_to_stream(r) for r in rows]

    def get_by_name(self, name: str) -> Optional[StreamDefinition]:
        row = self.fetchone("SELECT * FROM waste_streams WHERE name = ?;", (name,))
        return _row_to_stream(row) if row else None
