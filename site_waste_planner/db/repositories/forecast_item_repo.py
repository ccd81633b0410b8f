"""Repository for ``forecast_items``."""

from __future__ import annotations

import sqlite3
from typing import Optional

from site_waste_planner.db.repositories.base import BaseRepository
from site_waste_planner.models.forecast import ForecastLineItem


def _row_to_item(row: sqlite3.Row) -> ForecastLineItem:
    return ForecastLineItem(
        item_id=row["item_id"],
        project_id=row["project_id"],
        item_name=row["item_name"],
        material_type=row["material_type"],
        quantity=row["quantity"],
        excess_percent=row["excess_percent"],
        unit=row["unit"],
        linear_mass_factor=row["linear_mass_factor"],
        density=row["density"],
        allocated_stream_key=row["allocated_stream_key"],
        computed_waste_qty=row["computed_waste_qty"],
        computed_waste_kg=row["computed_waste_kg"],
    )


class ForecastItemRepository(BaseRepository):
    """Read/write access to ``forecast_items``. Satisfies ``ForecastItemStore``."""

    def upsert(self, item: ForecastLineItem) -> None:
        """Insert or replace the user-authored fields of an item.

        Computed fields are left as they are on update; they belong to the
        allocation sync.
        """
        self.execute(
            """
            INSERT INTO forecast_items (
                item_id, project_id, item_name, material_type, quantity,
                excess_percent, unit, linear_mass_factor, density, allocated_stream_key
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(item_id) DO UPDATE SET
                project_id           = excluded.project_id,
                item_name            = excluded.item_name,
                material_type        = excluded.material_type,
                quantity             = excluded.quantity,
                excess_percent       = excluded.excess_percent,
                unit                 = excluded.unit,
                linear_mass_factor   = excluded.linear_mass_factor,
                density              = excluded.density,
                allocated_stream_key = excluded.allocated_stream_key,
                updated_at           = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                item.item_id,
                item.project_id,
                item.item_name,
                item.material_type,
                item.quantity,
                item.excess_percent,
                item.unit,
                item.linear_mass_factor,
                item.density,
                item.allocated_stream_key,
            ),
        )

    def list_items(self, project_id: str) -> list[ForecastLineItem]:
        rows = self.fetchall(
            "SELECT * FROM forecast_items WHERE project_id = ? ORDER BY item_id;",
            (project_id,),
        )
        return [_row_to_item(r) for r in rows]

    def get_item(self, item_id: str) -> Optional[ForecastLineItem]:
        row = self.fetchone("SELECT * FROM forecast_items WHERE item_id = ?;", (item_id,))
        return _row_to_item(row) if row else None

    def update_computed_fields(self, item_id: str, waste_qty: float, waste_kg: Optional[float]) -> None:
        self.execute(
            """
            UPDATE forecast_items SET
                computed_waste_qty = ?,
                computed_waste_kg  = ?,
                updated_at         = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')
            WHERE item_id = ?;
            """,
            (waste_qty, waste_kg, item_id),
        )
