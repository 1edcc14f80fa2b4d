"""Fan-out of committed snapshots and leak events to subscribers."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List

from app.schemas import LeakEvent, UsageState

logger = logging.getLogger(__name__)

AlertListener = Callable[[LeakEvent], None]
SnapshotListener = Callable[[UsageState], None]
Unsubscribe = Callable[[], None]


class Notifier:
    """Delivers each committed snapshot and alert to every subscriber in order.

    A failing subscriber is logged and skipped; it never affects the update
    that published the value or the other subscribers.
    """

    def __init__(self, history_size: int = 50) -> None:
        self._alert_listeners: List[AlertListener] = []
        self._snapshot_listeners: List[SnapshotListener] = []
        self._history: Deque[LeakEvent] = deque(maxlen=history_size)

    def subscribe_alerts(self, listener: AlertListener) -> Unsubscribe:
        self._alert_listeners.append(listener)
        return lambda: self._discard(self._alert_listeners, listener)

    def subscribe_snapshots(self, listener: SnapshotListener) -> Unsubscribe:
        self._snapshot_listeners.append(listener)
        return lambda: self._discard(self._snapshot_listeners, listener)

    def publish_alert(self, event: LeakEvent) -> None:
        self._history.append(event)
        for listener in list(self._alert_listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - subscribers must not break the pipeline
                logger.exception(
                    "Alert subscriber failed",
                    extra={"event_type": event.type, "location": event.location},
                )

    def publish_snapshot(self, state: UsageState) -> None:
        for listener in list(self._snapshot_listeners):
            try:
                listener(state)
            except Exception:  # noqa: BLE001 - subscribers must not break the pipeline
                logger.exception("Snapshot subscriber failed")

    def recent_alerts(self, limit: int | None = None) -> list[LeakEvent]:
        """Most recent alerts, oldest first."""
        events = list(self._history)
        if limit is not None:
            return events[-limit:] if limit > 0 else []
        return events

    @staticmethod
    def _discard(listeners: list, listener: Callable) -> None:
        try:
            listeners.remove(listener)
        except ValueError:
            pass
