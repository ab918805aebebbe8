"""Derived statistics over the journal's trips and photos.

Everything here is a pure function of the collections passed in; nothing is
cached, so callers recompute on every view refresh.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from core.models import Photo, Trip

PHOTO_FORMS: dict[str, str] = {
    "one": "zdjęcie",
    "few": "zdjęcia",
    "many": "zdjęć",
}


@dataclass
class TripStat:
    """A trip paired with the number of photos attached to it."""

    trip: Trip
    photo_count: int

    def bar_ratio(self, max_photos: int) -> float:
        """Fraction of the widest bar this trip should fill (0.0-1.0)."""
        return self.photo_count / max(1, max_photos)


@dataclass
class StatsSnapshot:
    """Aggregates consumed by the stats view.

    Attributes:
        total_trips: Number of trips.
        total_photos: Number of photos.
        photos_per_trip: Average formatted with one decimal, "0" without trips.
        per_trip_stats: Trips by photo count, descending; ties keep trip order.
        max_photos: Largest per-trip count, never below 1.
    """

    total_trips: int = 0
    total_photos: int = 0
    photos_per_trip: str = "0"
    per_trip_stats: list[TripStat] = field(default_factory=list)
    max_photos: int = 1


def format_average(total: int, count: int) -> str:
    """Format `total / count` with one decimal place.

    The float quotient is rounded half up as stored, like JavaScript's
    `toFixed(1)`: 7 / 20 is 0.34999... in binary and gives "0.3".
    """
    if count == 0:
        return "0"
    value = Decimal(total / count)
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_stats(trips: Sequence[Trip], photos: Sequence[Photo]) -> StatsSnapshot:
    """Compute a `StatsSnapshot` from the current trips and photos."""
    counts = Counter(p.trip_id for p in photos)
    per_trip = [TripStat(trip=t, photo_count=counts.get(t.id, 0)) for t in trips]
    # sorted() is stable: equal counts keep the original trip order
    per_trip = sorted(per_trip, key=lambda s: s.photo_count, reverse=True)
    max_photos = max([1, *(s.photo_count for s in per_trip)])
    return StatsSnapshot(
        total_trips=len(trips),
        total_photos=len(photos),
        photos_per_trip=format_average(len(photos), len(trips)),
        per_trip_stats=per_trip,
        max_photos=max_photos,
    )


def plural_category(count: int) -> str:
    """Return the Polish plural category of `count`: "one", "few" or "many".

    Exactly 1 is "one". Counts ending in 2-4 are "few", except those ending
    in 12-14. Everything else, 0 included, is "many".
    """
    if count == 1:
        return "one"
    rem10 = count % 10
    rem100 = count % 100
    if 2 <= rem10 <= 4 and not 12 <= rem100 <= 14:
        return "few"
    return "many"


def photo_count_label(count: int) -> str:
    """Return the Polish noun form for `count` photos."""
    return PHOTO_FORMS[plural_category(count)]


def format_photo_count(count: int) -> str:
    """Return e.g. "1 zdjęcie", "3 zdjęcia", "12 zdjęć"."""
    return f"{count} {photo_count_label(count)}"
