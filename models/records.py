"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True, frozen=True)
class FlowReading:
    """A single flow-rate sample delivered by a reading source.

    ``flow_rate`` is in litres per minute and ``elapsed_seconds`` is the time
    since the previous sample. ``device_id`` optionally names the device the
    flow was attributed to.
    """

    flow_rate: float
    elapsed_seconds: float
    device_id: Optional[int] = None
    recorded_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class RowError:
    """A source row that could not be turned into a reading."""

    row_number: int
    reason: str
