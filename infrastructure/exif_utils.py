"""Utilities for EXIF GPS extraction and Polish date formatting.

GPS reading is best-effort and will not raise on unreadable files; callers
should expect `None` when no coordinate is available.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger
from PIL import ExifTags, Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from core.models import Location, parse_iso_datetime

register_heif_opener()

# GPS IFD tag numbers
GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4

# Genitive month names as used in "19 października 2026"
MONTHS_PL = (
    "stycznia",
    "lutego",
    "marca",
    "kwietnia",
    "maja",
    "czerwca",
    "lipca",
    "sierpnia",
    "września",
    "października",
    "listopada",
    "grudnia",
)


def dms_to_degrees(value: Any) -> float:
    """Convert an EXIF (degrees, minutes, seconds) triple to decimal degrees.

    A bare number is returned as a float unchanged.
    """
    if isinstance(value, (int, float)):
        return float(value)
    degrees, minutes, seconds = (float(v) for v in value)
    return degrees + minutes / 60.0 + seconds / 3600.0


def location_from_gps_ifd(gps: dict[int, Any]) -> Location | None:
    """Build a `Location` from a decoded GPS IFD mapping.

    South latitudes and west longitudes become negative.
    """
    lat_raw = gps.get(GPS_LATITUDE)
    lon_raw = gps.get(GPS_LONGITUDE)
    if lat_raw is None or lon_raw is None:
        return None
    try:
        lat = dms_to_degrees(lat_raw)
        lon = dms_to_degrees(lon_raw)
    except (TypeError, ValueError, ZeroDivisionError) as ex:
        logger.debug("GPS conversion failed: {}", ex)
        return None
    if str(gps.get(GPS_LATITUDE_REF, "N")).strip().upper() == "S":
        lat = -lat
    if str(gps.get(GPS_LONGITUDE_REF, "E")).strip().upper() == "W":
        lon = -lon
    return Location(latitude=lat, longitude=lon)


def read_gps_location(path: str) -> Location | None:
    """Extract the GPS coordinate from an image's EXIF, if present."""
    try:
        with Image.open(path) as im:
            gps = im.getexif().get_ifd(ExifTags.IFD.GPSInfo)
    except (OSError, UnidentifiedImageError, ValueError) as ex:
        logger.debug("EXIF read failed for {}: {}", path, ex)
        return None
    if not gps:
        return None
    return location_from_gps_ifd(dict(gps))


def format_date_pl(value: datetime | str | None) -> str:
    """Format a date as a long Polish date, e.g. "5 maja 2024"."""
    if value is None or value == "":
        return "brak daty"
    dt = value if isinstance(value, datetime) else parse_iso_datetime(value)
    if dt is None:
        return "nieprawidłowa data"
    return f"{dt.day} {MONTHS_PL[dt.month - 1]} {dt.year}"
