"""Shared fixtures for the journal test suite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from core.services.trip_store import TripStore
from infrastructure.storage import InMemoryStorage


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value


class FlakyStorage(InMemoryStorage):
    """In-memory storage whose operations can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False
        self.set_calls = 0

    async def get(self, key: str) -> str | None:
        if self.fail_get:
            raise OSError("disk unavailable")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self.set_calls += 1
        if self.fail_set:
            raise OSError("disk full")
        await super().set(key, value)

    async def remove(self, key: str) -> None:
        if self.fail_remove:
            raise OSError("read-only")
        await super().remove(key)


class SlowStorage(InMemoryStorage):
    """In-memory storage whose writes suspend before landing.

    `delays` gives the sleep for each successive `set()`; later calls use the
    last value. Every landed value is appended to `writes` in landing order.
    """

    def __init__(self, delays: list[float] | None = None) -> None:
        super().__init__()
        self.delays = list(delays or [0.01])
        self.writes: list[str] = []

    async def set(self, key: str, value: str) -> None:
        delay = self.delays.pop(0) if len(self.delays) > 1 else self.delays[0]
        await asyncio.sleep(delay)
        self.writes.append(value)
        await super().set(key, value)


def run(coro):
    """Drive a coroutine to completion."""
    return asyncio.run(coro)


@pytest.fixture
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store(storage: FlakyStorage, clock: StepClock) -> TripStore:
    return TripStore(storage, clock=clock)
