"""Core domain models for trips and photos."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Returns None if the value is empty or invalid.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Invalid datetime: {}", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_iso_datetime(dt: datetime | None) -> str | None:
    """Format datetime as ISO-8601; None stays None."""
    return dt.isoformat() if dt else None


@dataclass(frozen=True)
class Location:
    """Geographic coordinate in decimal degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Any) -> Location | None:
        """Build from a `{latitude, longitude}` mapping, None if unusable."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Invalid location dropped: {}", data)
            return None


@dataclass
class Trip:
    """A named journal entry; `id` and `date` never change after creation."""

    id: int
    title: str
    description: str = ""
    date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": format_iso_datetime(self.date),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trip:
        """Build a trip from its stored form, default-filling missing fields.

        Raises:
            ValueError: when `id` is missing or not an integer.
        """
        return cls(
            id=_require_int(data, "id"),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            date=parse_iso_datetime(data.get("date")),
        )


@dataclass
class Photo:
    """An image reference attached to exactly one trip."""

    id: int
    trip_id: int
    uri: str
    description: str = ""
    date: datetime | None = None
    location: Location | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tripId": self.trip_id,
            "uri": self.uri,
            "description": self.description,
            "date": format_iso_datetime(self.date),
            "location": self.location.to_dict() if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Photo:
        """Build a photo from its stored form, default-filling missing fields.

        Raises:
            ValueError: when `id` or `tripId` is missing or not an integer.
        """
        return cls(
            id=_require_int(data, "id"),
            trip_id=_require_int(data, "tripId"),
            uri=str(data.get("uri") or ""),
            description=str(data.get("description") or ""),
            date=parse_iso_datetime(data.get("date")),
            location=Location.from_dict(data.get("location")),
        )


@dataclass
class NewPhoto:
    """Input for one photo of a batch add, as supplied by the image picker."""

    uri: str
    description: str = ""
    location: Location | None = None


@dataclass
class JournalDocument:
    """The whole persisted state as a single unit."""

    trips: list[Trip] = field(default_factory=list)
    photos: list[Photo] = field(default_factory=list)
    next_trip_id: int = 1
    next_photo_id: int = 1


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass but never a valid id
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value
