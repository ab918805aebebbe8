"""Key-value storage backends for the journal.

All backends implement `core.services.interfaces.KeyValueStorage` and raise
`OSError` when the underlying medium fails.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
import threading

from loguru import logger

from core.services.interfaces import KeyValueStorage
from infrastructure.settings import JsonSettings


class InMemoryStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage:
    """Storage backed by a single JSON object file mapping keys to strings.

    File IO runs in a worker thread. Writes go to a temporary file which then
    replaces the original, so a crash mid-write keeps the previous content.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read_locked)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._update, key, None)

    def _read_locked(self) -> dict[str, object]:
        with self._lock:
            return self._read()

    def _read(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as ex:
                # A damaged container file is treated as empty; values are
                # rewritten on the next set().
                logger.warning("Storage file {} unreadable: {}", self._path, ex)
                return {}
        return data if isinstance(data, dict) else {}

    def _update(self, key: str, value: str | None) -> None:
        with self._lock:
            data = self._read()
            if value is None:
                if key not in data:
                    return
                data.pop(key)
            else:
                data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                with tmp_path.open("w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except Exception:
                tmp_path.unlink(missing_ok=True)
                raise


class QSettingsStorage:
    """Storage backed by Qt's `QSettings` in INI format."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Qt is only loaded when this backend is selected.
        from PySide6.QtCore import QSettings  # pylint: disable=import-outside-toplevel

        self._qsettings = QSettings
        self._settings = QSettings(str(self._path), QSettings.Format.IniFormat)

    async def get(self, key: str) -> str | None:
        self._settings.sync()
        self._check_status("read")
        value = self._settings.value(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        self._settings.setValue(key, value)
        self._settings.sync()
        self._check_status("write")

    async def remove(self, key: str) -> None:
        self._settings.remove(key)
        self._settings.sync()
        self._check_status("write")

    def _check_status(self, action: str) -> None:
        status = self._settings.status()
        if status != self._qsettings.Status.NoError:
            raise OSError(f"QSettings {action} failed for {self._path}: {status.name}")


def build_storage(settings: JsonSettings) -> KeyValueStorage:
    """Create the backend named by `storage.backend` in settings."""
    backend = str(settings.get("storage.backend", "json")).lower()
    path = settings.get("storage.path", "~/.travel_journal/storage.json")
    if backend == "memory":
        return InMemoryStorage()
    if backend == "qsettings":
        return QSettingsStorage(path)
    if backend == "json":
        return JsonFileStorage(path)
    raise ValueError(f"Unknown storage backend: {backend}")
