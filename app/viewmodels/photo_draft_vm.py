"""Transient state of the add-photos screen.

Images picked from the gallery or camera are collected here together with
their descriptions and optional coordinates. Nothing reaches the store until
`commit()` adds the whole selection as one batch.
"""

from __future__ import annotations

from loguru import logger

from core.errors import ValidationError
from core.models import Location, NewPhoto, Photo
from core.services.stats_service import format_photo_count
from core.services.trip_store import TripStore


class PhotoDraftVM:
    """Selection of images waiting to be attached to a trip."""

    def __init__(self, trip_id: int) -> None:
        self.trip_id = trip_id
        self.uris: list[str] = []
        self.descriptions: dict[str, str] = {}
        self.locations: dict[str, Location] = {}
        self.current_index = 0

    @property
    def current_uri(self) -> str | None:
        if not self.uris:
            return None
        return self.uris[self.current_index]

    def replace_selection(self, picked: list[tuple[str, Location | None]]) -> None:
        """Replace the selection with gallery picks (uri, exif location)."""
        self.uris = []
        self.descriptions = {}
        self.locations = {}
        for uri, location in picked:
            self._add(uri, location)
        self.current_index = 0

    def append_capture(self, uri: str, location: Location | None = None) -> None:
        """Append a camera shot and make it the current image."""
        self._add(uri, location)
        self.current_index = len(self.uris) - 1

    def set_description(self, text: str) -> None:
        uri = self.current_uri
        if uri is not None:
            self.descriptions[uri] = text

    def attach_location(self, location: Location) -> None:
        """Tag the current image with a device coordinate."""
        uri = self.current_uri
        if uri is not None:
            self.locations[uri] = location

    def detach_location(self) -> bool:
        """Drop the current image's coordinate; False if it had none."""
        uri = self.current_uri
        if uri is None or uri not in self.locations:
            return False
        del self.locations[uri]
        return True

    def next_image(self) -> None:
        if self.current_index < len(self.uris) - 1:
            self.current_index += 1

    def previous_image(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1

    def remove_current(self) -> None:
        """Remove the current image, keeping the index in range."""
        uri = self.current_uri
        if uri is None:
            return
        self.uris.remove(uri)
        self.descriptions.pop(uri, None)
        self.locations.pop(uri, None)
        if not self.uris:
            self.current_index = 0
        elif self.current_index >= len(self.uris):
            self.current_index = len(self.uris) - 1

    def drafts(self) -> list[NewPhoto]:
        return [
            NewPhoto(
                uri=uri,
                description=self.descriptions.get(uri, ""),
                location=self.locations.get(uri),
            )
            for uri in self.uris
        ]

    async def commit(self, store: TripStore) -> tuple[list[Photo], str]:
        """Add all selected images to the trip with a single persist.

        Returns the created photos and the confirmation message.

        Raises:
            ValidationError: when no image is selected.
            NotFoundError: when the trip was deleted meanwhile.
        """
        if not self.uris:
            raise ValidationError("No photos selected")
        photos = await store.add_photos(self.trip_id, self.drafts())
        logger.info("Draft committed: {} photos for trip {}", len(photos), self.trip_id)
        message = f"Dodano {format_photo_count(len(photos))} pomyślnie!"
        return photos, message

    def _add(self, uri: str, location: Location | None) -> None:
        if uri in self.descriptions:
            logger.debug("Image {} already selected", uri)
            return
        self.uris.append(uri)
        self.descriptions[uri] = ""
        if location is not None:
            self.locations[uri] = location
