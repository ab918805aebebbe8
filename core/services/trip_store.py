"""In-memory trip/photo store with persistence to a key-value backend.

The store owns the trip and photo collections and both id counters. Every
mutator applies its change to memory synchronously, then awaits a single
write of the whole state. A failed write is reported as `PersistenceError`
but the in-memory change is kept, so the running session never loses the
user's input; the next successful save makes it durable.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
import json
from typing import Any

from loguru import logger

from core.errors import NotFoundError, PersistenceError, ValidationError
from core.models import JournalDocument, Location, NewPhoto, Photo, Trip
from core.services.interfaces import KeyValueStorage
from core.services.sort_service import SortService

STORAGE_KEY = "appData"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Trip title is required")
    return cleaned


def _coerce_location(value: Any) -> Location | None:
    if value is None or isinstance(value, Location):
        return value
    location = Location.from_dict(value)
    if location is None:
        raise ValidationError(f"Invalid photo location: {value!r}")
    return location


def _coerce_counter(value: Any, existing_ids: Iterable[int]) -> int:
    """Return a usable next-id counter.

    Absent, non-integer and non-positive values become 1; the result is never
    below the highest existing id + 1 so loaded ids cannot be handed out again.
    """
    counter = value if isinstance(value, int) and not isinstance(value, bool) else 1
    counter = max(counter, 1)
    return max(counter, max(existing_ids, default=0) + 1)


def parse_document(data: Any) -> JournalDocument:
    """Convert a decoded JSON document into a `JournalDocument`.

    Non-list `trips`/`photos` become empty lists; malformed or duplicate
    entries are skipped with a warning.
    """
    if not isinstance(data, dict):
        logger.warning("Journal document is not an object: {}", type(data).__name__)
        return JournalDocument()

    trips: list[Trip] = []
    seen_trips: set[int] = set()
    raw_trips = data.get("trips")
    for row in raw_trips if isinstance(raw_trips, list) else []:
        try:
            if not isinstance(row, dict):
                raise ValueError("trip entry is not an object")
            trip = Trip.from_dict(row)
        except ValueError as ex:
            logger.warning("Trip row skipped: {} | row={}", ex, row)
            continue
        if trip.id in seen_trips:
            logger.warning("Duplicate trip id {} skipped", trip.id)
            continue
        seen_trips.add(trip.id)
        trips.append(trip)

    photos: list[Photo] = []
    seen_photos: set[int] = set()
    raw_photos = data.get("photos")
    for row in raw_photos if isinstance(raw_photos, list) else []:
        try:
            if not isinstance(row, dict):
                raise ValueError("photo entry is not an object")
            photo = Photo.from_dict(row)
        except ValueError as ex:
            logger.warning("Photo row skipped: {} | row={}", ex, row)
            continue
        if photo.id in seen_photos:
            logger.warning("Duplicate photo id {} skipped", photo.id)
            continue
        seen_photos.add(photo.id)
        photos.append(photo)

    return JournalDocument(
        trips=trips,
        photos=photos,
        next_trip_id=_coerce_counter(data.get("nextTripId"), seen_trips),
        next_photo_id=_coerce_counter(data.get("nextPhotoId"), seen_photos),
    )


class TripStore:
    """Authoritative collection of trips and photos.

    Readers get copies; only the mutators below change state. The store is
    meant to be driven from one logical sequence of user actions. Writes are
    serialized by an internal lock so overlapping persists land in order.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        clock: Callable[[], datetime] | None = None,
        sorter: SortService | None = None,
    ) -> None:
        """Create an empty store.

        Args:
            storage: Backend receiving the serialized state.
            key: Storage key holding the whole document.
            clock: Source of creation timestamps (defaults to UTC now).
            sorter: Sorting service (defaults to `SortService`).
        """
        self._storage = storage
        self._key = key
        self._clock = clock or _utc_now
        self._sorter = sorter or SortService()
        self._write_lock = asyncio.Lock()
        self._trips: list[Trip] = []
        self._photos: list[Photo] = []
        self._next_trip_id = 1
        self._next_photo_id = 1

    @classmethod
    async def open(
        cls,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        clock: Callable[[], datetime] | None = None,
    ) -> TripStore:
        """Create a store and load its persisted state (or start empty)."""
        store = cls(storage, key=key, clock=clock)
        await store.load()
        return store

    # ---- reads -------------------------------------------------------------

    @property
    def trips(self) -> list[Trip]:
        """Trips in insertion order."""
        return [replace(t) for t in self._trips]

    @property
    def photos(self) -> list[Photo]:
        """Photos in insertion order."""
        return [replace(p) for p in self._photos]

    @property
    def next_trip_id(self) -> int:
        return self._next_trip_id

    @property
    def next_photo_id(self) -> int:
        return self._next_photo_id

    def get_trip(self, trip_id: int) -> Trip | None:
        trip = self._find_trip(trip_id)
        return replace(trip) if trip else None

    def list_trips_by_date(self, descending: bool = True) -> list[Trip]:
        """Return trips ordered by creation date (newest first by default)."""
        return self._sorter.sort(self.trips, [("date", not descending)])

    def list_photos_for_trip(self, trip_id: int) -> list[Photo]:
        """Return the photos of `trip_id`, newest first."""
        photos = [replace(p) for p in self._photos if p.trip_id == trip_id]
        return self._sorter.sort(photos, [("date", False)])

    # ---- trip mutators -----------------------------------------------------

    async def add_trip(self, title: str, description: str = "") -> Trip:
        """Create a trip and persist it.

        Raises:
            ValidationError: when `title` is blank.
            PersistenceError: when the write fails (the trip is kept in memory).
        """
        trip = Trip(
            id=self._next_trip_id,
            title=_clean_title(title),
            description=(description or "").strip(),
            date=self._clock(),
        )
        self._next_trip_id += 1
        self._trips.append(trip)
        logger.info("Trip {} added: {}", trip.id, trip.title)
        await self._persist("add_trip")
        return replace(trip)

    async def update_trip(self, trip_id: int, title: str, description: str = "") -> Trip:
        """Replace the title and description of an existing trip.

        Raises:
            NotFoundError: when no trip has `trip_id`.
            ValidationError: when `title` is blank.
        """
        trip = self._find_trip(trip_id)
        if trip is None:
            raise NotFoundError("Trip", trip_id)
        trip.title = _clean_title(title)
        trip.description = (description or "").strip()
        logger.info("Trip {} updated", trip_id)
        await self._persist("update_trip")
        return replace(trip)

    async def delete_trip(self, trip_id: int) -> bool:
        """Delete a trip together with all of its photos.

        Returns False (and writes nothing) when the trip does not exist.
        """
        if self._find_trip(trip_id) is None:
            logger.debug("delete_trip: trip {} already absent", trip_id)
            return False
        # Both collections change before the first suspension point.
        kept_photos = [p for p in self._photos if p.trip_id != trip_id]
        removed = len(self._photos) - len(kept_photos)
        self._trips = [t for t in self._trips if t.id != trip_id]
        self._photos = kept_photos
        logger.info("Trip {} deleted with {} photos", trip_id, removed)
        await self._persist("delete_trip")
        return True

    # ---- photo mutators ----------------------------------------------------

    async def add_photo(
        self,
        trip_id: int,
        uri: str,
        description: str = "",
        location: Location | None = None,
    ) -> Photo:
        """Attach a single photo to a trip and persist it."""
        photos = await self.add_photos(
            trip_id, [NewPhoto(uri=uri, description=description, location=location)]
        )
        return photos[0]

    async def add_photos(self, trip_id: int, drafts: Iterable[NewPhoto]) -> list[Photo]:
        """Attach a batch of photos to a trip with a single persist.

        Raises:
            NotFoundError: when `trip_id` does not reference an existing trip;
                nothing is added in that case.
            ValidationError: when a draft location is not a `Location` or a
                `{latitude, longitude}` mapping; nothing is added.
        """
        if self._find_trip(trip_id) is None:
            raise NotFoundError("Trip", trip_id)
        drafts = list(drafts)
        if not drafts:
            return []
        # Validate the whole batch first; a rejected draft adds nothing.
        locations = [_coerce_location(draft.location) for draft in drafts]

        created: list[Photo] = []
        for draft, location in zip(drafts, locations):
            photo = Photo(
                id=self._next_photo_id,
                trip_id=trip_id,
                uri=draft.uri,
                description=(draft.description or "").strip(),
                date=self._clock(),
                location=location,
            )
            self._next_photo_id += 1
            created.append(photo)
        self._photos.extend(created)
        logger.info("Added {} photos to trip {}", len(created), trip_id)
        await self._persist("add_photos")
        return [replace(p) for p in created]

    async def delete_photo(self, photo_id: int) -> bool:
        """Delete a photo; returns False when it was already absent."""
        kept = [p for p in self._photos if p.id != photo_id]
        if len(kept) == len(self._photos):
            logger.debug("delete_photo: photo {} already absent", photo_id)
            return False
        self._photos = kept
        logger.info("Photo {} deleted", photo_id)
        await self._persist("delete_photo")
        return True

    # ---- persistence -------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Return the whole state as a JSON-compatible dict."""
        return {
            "trips": [t.to_dict() for t in self._trips],
            "photos": [p.to_dict() for p in self._photos],
            "nextTripId": self._next_trip_id,
            "nextPhotoId": self._next_photo_id,
        }

    def apply_document(self, data: Any) -> None:
        """Replace the whole state with the decoded document `data`."""
        doc = parse_document(data)
        self._trips = doc.trips
        self._photos = doc.photos
        self._next_trip_id = doc.next_trip_id
        self._next_photo_id = doc.next_photo_id

    async def save(self) -> None:
        """Write the current state to storage."""
        await self._persist("save")

    async def load(self) -> bool:
        """Replace the state with the persisted one.

        Returns True when a stored document was found and applied. Missing or
        corrupt data leaves an empty store and returns False.

        Raises:
            PersistenceError: when storage cannot be read; the store is reset
                to empty first so it stays usable.
        """
        try:
            raw = await self._storage.get(self._key)
        except OSError as ex:
            self._reset()
            logger.error("Load journal data failed: {}", ex)
            raise PersistenceError(f"Could not read journal data: {ex}") from ex

        if raw is None:
            self._reset()
            logger.info("No journal data under key {}", self._key)
            return False
        try:
            data = json.loads(raw)
        except ValueError as ex:
            self._reset()
            logger.warning("Corrupt journal data, starting empty: {}", ex)
            return False
        if not isinstance(data, dict):
            self._reset()
            logger.warning("Journal data is not an object, starting empty")
            return False

        self.apply_document(data)
        logger.info(
            "Loaded {} trips and {} photos (next ids {}/{})",
            len(self._trips),
            len(self._photos),
            self._next_trip_id,
            self._next_photo_id,
        )
        return True

    async def clear_all(self) -> None:
        """Remove every trip and photo, reset counters and erase the stored record."""
        self._reset()
        logger.info("Journal cleared")
        async with self._write_lock:
            try:
                await self._storage.remove(self._key)
            except OSError as ex:
                logger.error("Erase journal data failed: {}", ex)
                raise PersistenceError(f"Could not erase journal data: {ex}") from ex

    # ---- internals ---------------------------------------------------------

    def _find_trip(self, trip_id: int) -> Trip | None:
        for trip in self._trips:
            if trip.id == trip_id:
                return trip
        return None

    def _reset(self) -> None:
        self._trips = []
        self._photos = []
        self._next_trip_id = 1
        self._next_photo_id = 1

    async def _persist(self, action: str) -> None:
        async with self._write_lock:
            # Serialize inside the lock so the last write carries the latest state.
            payload = json.dumps(self.to_document(), ensure_ascii=False)
            try:
                await self._storage.set(self._key, payload)
            except OSError as ex:
                logger.error("Persist after {} failed: {}", action, ex)
                raise PersistenceError(f"Could not save journal data: {ex}") from ex
