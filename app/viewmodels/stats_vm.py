"""ViewModel for the statistics screen."""

from __future__ import annotations

from dataclasses import dataclass

from core.services.stats_service import (
    StatsSnapshot,
    compute_stats,
    format_photo_count,
)
from core.services.trip_store import TripStore


@dataclass
class StatsRow:
    """One bar of the per-trip chart."""

    trip_id: int
    title: str
    photo_count: int
    count_text: str
    bar_ratio: float


class StatsVM:
    """Recomputes statistics from the store on every refresh."""

    def __init__(self, store: TripStore) -> None:
        self._store = store
        self.snapshot = StatsSnapshot()

    def refresh(self) -> StatsSnapshot:
        self.snapshot = compute_stats(self._store.trips, self._store.photos)
        return self.snapshot

    @property
    def rows(self) -> list[StatsRow]:
        snap = self.snapshot
        return [
            StatsRow(
                trip_id=s.trip.id,
                title=s.trip.title,
                photo_count=s.photo_count,
                count_text=format_photo_count(s.photo_count),
                bar_ratio=s.bar_ratio(snap.max_photos),
            )
            for s in snap.per_trip_stats
        ]

    @property
    def is_empty(self) -> bool:
        return self.snapshot.total_trips == 0
