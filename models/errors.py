"""Error taxonomy for the monitoring core."""

from __future__ import annotations

from typing import Any


class InvalidReading(ValueError):
    """Raised when a reading is negative, non-finite or not a number."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid {field} {value!r}: {reason}.")
        self.field = field
        self.value = value
        self.reason = reason


class PersistenceError(RuntimeError):
    """Raised when the snapshot store cannot write to its backing storage."""
