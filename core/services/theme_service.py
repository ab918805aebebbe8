"""Persisted light/dark theme preference."""

from __future__ import annotations

from loguru import logger

from core.services.interfaces import KeyValueStorage

THEME_KEY = "themePreference"
DARK = "dark"
LIGHT = "light"


async def load_dark_mode(storage: KeyValueStorage, system_scheme: str | None = None) -> bool:
    """Return True when the dark theme should be used.

    Falls back to `system_scheme` when no preference is stored or the storage
    cannot be read.
    """
    try:
        saved = await storage.get(THEME_KEY)
    except OSError as ex:
        logger.warning("Theme preference unreadable, using system scheme: {}", ex)
        saved = None
    if saved is not None:
        return saved == DARK
    return system_scheme == DARK


async def save_dark_mode(storage: KeyValueStorage, dark: bool) -> bool:
    """Store the preference; returns False when the write failed."""
    try:
        await storage.set(THEME_KEY, DARK if dark else LIGHT)
    except OSError as ex:
        logger.error("Save theme preference failed: {}", ex)
        return False
    return True
