"""Sorting service for trip and photo collections.

The service performs stable multi-key sorting, handling None values and
per-key ascending/descending ordering without mutating the input.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

T = TypeVar("T")


class SortService:
    """Provides sorting utilities for `Trip` and `Photo` sequences."""

    def sort(self, items: Iterable[T], sort_keys: list[tuple[str, bool]]) -> list[T]:
        """Return a new list of `items` ordered by the provided keys.

        Args:
            items: Records to sort; left untouched.
            sort_keys: List of tuples (field_name, ascending). None values
                order before any real value when ascending.

        Items that compare equal keep their input order.
        """
        result = list(items)
        # Python's sort is stable, so sorting by the least significant key
        # first yields a correct multi-key order.
        for field_name, ascending in reversed(sort_keys):
            result.sort(
                key=lambda it, f=field_name: _none_safe(getattr(it, f, None)),
                reverse=not ascending,
            )
        return result


def _none_safe(value: Any) -> tuple[int, Any]:
    return (0, 0) if value is None else (1, value)
