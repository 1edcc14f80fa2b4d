"""Edge-triggered leak detection."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from app.schemas import LeakEvent, LeakEventType, LeakSeverity

HOUSEHOLD_LOCATION = "Household"


class DetectorState(str, Enum):
    normal = "normal"
    leak = "leak"


class LeakDetector:
    """Two-state machine that reports only the edges of a high-flow excursion.

    A reading above ``threshold`` while ``normal`` opens a leak and yields a
    ``leak_started`` event; the first reading at or below the threshold while
    in ``leak`` yields ``leak_cleared``. Every other reading yields nothing,
    so a sustained excursion produces exactly one alert.
    """

    def __init__(self, threshold: float = 45.0, critical_ratio: float = 1.25) -> None:
        self.threshold = threshold
        self.critical_ratio = critical_ratio
        self._state = DetectorState.normal

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def leak_detected(self) -> bool:
        return self._state is DetectorState.leak

    def restore(self, leak_detected: bool) -> None:
        """Resume from a previously committed snapshot."""
        self._state = DetectorState.leak if leak_detected else DetectorState.normal

    def evaluate(
        self,
        flow_rate: float,
        location: str = HOUSEHOLD_LOCATION,
        device_id: Optional[int] = None,
        device_name: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> Optional[LeakEvent]:
        above = flow_rate > self.threshold

        if above and self._state is DetectorState.normal:
            self._state = DetectorState.leak
            event_type = LeakEventType.leak_started
            severity = self._severity(flow_rate)
        elif not above and self._state is DetectorState.leak:
            self._state = DetectorState.normal
            event_type = LeakEventType.leak_cleared
            severity = None
        else:
            return None

        return LeakEvent(
            type=event_type,
            location=location,
            severity=severity,
            flow_rate=flow_rate,
            threshold=self.threshold,
            device_id=device_id,
            device_name=device_name,
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )

    def _severity(self, flow_rate: float) -> LeakSeverity:
        if flow_rate >= self.threshold * self.critical_ratio:
            return LeakSeverity.critical
        return LeakSeverity.warning
