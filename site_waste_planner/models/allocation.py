"""Result of an allocation synchronisation run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StreamTotal(BaseModel):
    """Forecast mass allocated to one stream, in tonnes."""

    model_config = ConfigDict(frozen=True)

    stream_key: str
    total_tonnes: float


class SyncResult(BaseModel):
    """Outcome of ``sync_allocation()``.

    Attributes:
        stream_totals: Per-stream forecast totals (tonnes), sorted by stream key.
        unallocated_count: Items with no (known) stream.
        conversion_required_count: Allocated items whose mass is unresolvable.
        included_count: Items contributing to ``stream_totals``.
        added_streams: Streams newly added to the plan document by this sync.
    """

    model_config = ConfigDict(frozen=True)

    stream_totals: list[StreamTotal] = []
    unallocated_count: int = 0
    conversion_required_count: int = 0
    included_count: int = 0
    added_streams: list[str] = []

    @property
    def item_count(self) -> int:
        return self.unallocated_count + self.conversion_required_count + self.included_count

    @property
    def total_tonnes(self) -> float:
        return sum(t.total_tonnes for t in self.stream_totals)

    def totals_by_stream(self) -> dict[str, float]:
        return {t.stream_key: t.total_tonnes for t in self.stream_totals}
