"""Lightweight view model wrapper around `Photo`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlparse

from core.models import Location, Photo
from infrastructure.exif_utils import format_date_pl


def map_url(location: Location | None, platform: str = "android") -> str | None:
    """Return a URL opening `location` in the platform's maps app."""
    if location is None:
        return None
    lat, lon = location.latitude, location.longitude
    if platform == "ios":
        return f"maps:0,0?q={lat},{lon}"
    return f"geo:{lat},{lon}?q={lat},{lon}"


@dataclass
class PhotoVM:
    """Expose convenient properties for bindings/templates."""

    record: Photo

    @property
    def photo_id(self) -> int:
        return self.record.id

    @property
    def file_name(self) -> str:
        """Last path segment of the photo URI."""
        return PurePosixPath(urlparse(self.record.uri).path).name

    @property
    def description(self) -> str:
        return self.record.description

    @property
    def has_location(self) -> bool:
        """True if the photo carries a coordinate."""
        return self.record.location is not None

    @property
    def date_text(self) -> str:
        return format_date_pl(self.record.date)

    def map_url(self, platform: str = "android") -> str | None:
        return map_url(self.record.location, platform)
