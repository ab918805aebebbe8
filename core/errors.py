"""Exception types raised by the journal store and its services."""

from __future__ import annotations


class JournalError(Exception):
    """Base exception for journal errors."""


class ValidationError(JournalError):
    """Required text input was empty or otherwise unusable."""


class NotFoundError(JournalError):
    """An operation referenced a trip or photo that does not exist."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PersistenceError(JournalError):
    """Reading from or writing to the key-value storage failed."""
