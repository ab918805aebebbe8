"""ViewModel for the trip list and trip detail screens."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from app.viewmodels.photo_vm import PhotoVM
from core.errors import NotFoundError
from core.models import Trip
from core.services.stats_service import format_photo_count
from core.services.trip_store import TripStore
from infrastructure.exif_utils import format_date_pl


@dataclass
class TripDetail:
    """Read-only snapshot of a trip with its photos, newest first."""

    trip: Trip
    photos: list[PhotoVM] = field(default_factory=list)

    @property
    def date_text(self) -> str:
        return format_date_pl(self.trip.date)

    @property
    def photo_count_text(self) -> str:
        return format_photo_count(len(self.photos))


class TripsVM:
    """Mediates between the trip store and the trip screens.

    Screens call `refresh()` / `open_trip()` when they gain focus and render
    the snapshots returned; they never touch the store's collections.
    """

    def __init__(self, store: TripStore) -> None:
        self._store = store
        self.trips: list[Trip] = []

    def refresh(self) -> list[Trip]:
        """Reload the trip list, newest first."""
        self.trips = self._store.list_trips_by_date(descending=True)
        return self.trips

    def open_trip(self, trip_id: int) -> TripDetail:
        """Return the detail snapshot for `trip_id`.

        Raises:
            NotFoundError: when the trip no longer exists.
        """
        trip = self._store.get_trip(trip_id)
        if trip is None:
            logger.warning("Trip {} requested but not found", trip_id)
            raise NotFoundError("Trip", trip_id)
        photos = [PhotoVM(p) for p in self._store.list_photos_for_trip(trip_id)]
        return TripDetail(trip=trip, photos=photos)

    async def add_trip(self, title: str, description: str = "") -> Trip:
        trip = await self._store.add_trip(title, description)
        self.refresh()
        return trip

    async def save_changes(self, trip_id: int, title: str, description: str = "") -> TripDetail:
        """Apply an edit and return the refreshed detail snapshot."""
        await self._store.update_trip(trip_id, title, description)
        self.refresh()
        return self.open_trip(trip_id)

    def delete_trip_prompt(self, trip_id: int) -> str:
        """Confirmation text naming the trip and how many photos go with it."""
        detail = self.open_trip(trip_id)
        return (
            f'Czy na pewno chcesz usunąć "{detail.trip.title}"? '
            f"Zdjęcia ({len(detail.photos)}) też zostaną usunięte."
        )

    async def delete_trip(self, trip_id: int) -> bool:
        removed = await self._store.delete_trip(trip_id)
        self.refresh()
        return removed

    async def delete_photo(self, photo_id: int) -> bool:
        return await self._store.delete_photo(photo_id)
