"""Core service interfaces shared by the store and infrastructure layers.

The store depends only on these protocols so that the persistence backend
can be swapped (JSON file, Qt settings, in-memory) without touching it.
"""

from __future__ import annotations

from typing import Protocol


class KeyValueStorage(Protocol):
    """Asynchronous string-keyed string store.

    Implementations raise `OSError` when the underlying medium fails.
    """

    async def get(self, key: str) -> str | None:
        """Return the value stored under `key`, or None when absent."""
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        """Delete `key`; absent keys are ignored."""
        raise NotImplementedError
