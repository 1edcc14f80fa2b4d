"""Household monitoring pipeline: accumulate, detect, persist, publish."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from app.schemas import (
    Device,
    DeviceStatus,
    LeakEvent,
    LeakEventType,
    UsagePeriod,
    UsageState,
)
from datastore.snapshot_store import SnapshotStore, build_default_store, default_usage_state
from models.errors import InvalidReading, PersistenceError
from models.records import FlowReading
from services.aggregator import Aggregator
from services.detector import HOUSEHOLD_LOCATION, LeakDetector
from services.notifier import Notifier
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    state: UsageState
    event: Optional[LeakEvent] = None


class MonitorService:
    """Owns the household's committed state and every write to it.

    Each mutation builds a new ``UsageState``, saves it through the store and
    then publishes it. A failed save is logged and the in-memory state stays
    authoritative; the next commit rewrites the full snapshot.
    """

    def __init__(
        self,
        store: SnapshotStore,
        aggregator: Aggregator,
        detector: LeakDetector,
        notifier: Notifier,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.detector = detector
        self.notifier = notifier
        self._save_failed = False
        self._state = self._restore()
        self.detector.restore(self._state.leak_detected)
        self._next_device_id = max((device.id for device in self._state.devices), default=0) + 1

    @property
    def state(self) -> UsageState:
        return self._state

    @property
    def persistence_healthy(self) -> bool:
        return not self._save_failed

    def update(self, reading: FlowReading) -> UpdateResult:
        """Apply one reading and return the committed state and any alert."""
        try:
            accumulated = self.aggregator.accumulate(self._state, reading)
        except InvalidReading as exc:
            logger.warning(
                "Rejected reading",
                extra={
                    "flow_rate": reading.flow_rate,
                    "elapsed_seconds": reading.elapsed_seconds,
                    "device_id": reading.device_id,
                    "reason": str(exc),
                },
            )
            raise

        device = None
        if reading.device_id is not None:
            device = self._state.find_device(reading.device_id)
        event = self.detector.evaluate(
            accumulated.current_usage,
            location=device.location if device else HOUSEHOLD_LOCATION,
            device_id=device.id if device else None,
            device_name=device.name if device else None,
            occurred_at=reading.recorded_at,
        )
        committed = accumulated.model_copy(update={"leak_detected": self.detector.leak_detected})
        self._commit(committed)

        if event is not None:
            self._log_event(event)
            self.notifier.publish_alert(event)
        return UpdateResult(state=committed, event=event)

    def reset_usage(self, period: UsagePeriod) -> UsageState:
        """Zero an accumulation period; called by an external calendar scheduler."""
        state = self.aggregator.reset(self._state, period)
        logger.info("Usage totals reset", extra={"period": period})
        self._commit(state)
        return state

    def add_device(
        self,
        name: str,
        location: str,
        status: DeviceStatus = DeviceStatus.active,
        usage: float = 0.0,
    ) -> Device:
        device = Device(
            id=self._next_device_id,
            name=_required_label("name", name),
            location=_required_label("location", location),
            status=status,
            usage=_device_usage(usage),
        )
        self._next_device_id += 1
        self._commit(self._state.model_copy(update={"devices": self._state.devices + (device,)}))
        logger.info("Device registered", extra={"device_id": device.id, "location": device.location})
        return device

    def update_device(
        self,
        device_id: int,
        name: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[DeviceStatus] = None,
        usage: Optional[float] = None,
    ) -> Device:
        current = self._require_device(device_id)
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = _required_label("name", name)
        if location is not None:
            changes["location"] = _required_label("location", location)
        if status is not None:
            changes["status"] = status
        if usage is not None:
            changes["usage"] = _device_usage(usage)

        updated = Device.model_validate({**current.model_dump(), **changes})
        devices = tuple(updated if device.id == device_id else device for device in self._state.devices)
        self._commit(self._state.model_copy(update={"devices": devices}))
        return updated

    def remove_device(self, device_id: int) -> None:
        self._require_device(device_id)
        devices = tuple(device for device in self._state.devices if device.id != device_id)
        self._commit(self._state.model_copy(update={"devices": devices}))
        logger.info("Device removed", extra={"device_id": device_id})

    def _require_device(self, device_id: int) -> Device:
        device = self._state.find_device(device_id)
        if device is None:
            raise KeyError(f"Device {device_id} is not registered.")
        return device

    def _restore(self) -> UsageState:
        try:
            return self.store.load_or_initialize()
        except PersistenceError as exc:
            self._save_failed = True
            logger.error(
                "Could not persist default snapshot, continuing in memory",
                extra={"store_path": self.store.persistence_path, "reason": str(exc)},
            )
            return default_usage_state()

    def _commit(self, state: UsageState) -> None:
        self._state = state
        try:
            self.store.save(state)
        except PersistenceError as exc:
            self._save_failed = True
            logger.error(
                "Snapshot save failed, keeping in-memory state",
                extra={"store_path": self.store.persistence_path, "reason": str(exc)},
            )
        else:
            if self._save_failed:
                logger.info(
                    "Snapshot persistence recovered",
                    extra={"store_path": self.store.persistence_path},
                )
            self._save_failed = False
        self.notifier.publish_snapshot(state)

    @staticmethod
    def _log_event(event: LeakEvent) -> None:
        extra = {
            "event_type": event.type,
            "location": event.location,
            "severity": event.severity,
            "flow_rate": event.flow_rate,
            "device_id": event.device_id,
        }
        if event.type is LeakEventType.leak_started:
            logger.warning("Leak detected", extra=extra)
        else:
            logger.info("Leak cleared", extra=extra)


def _device_usage(value: float) -> float:
    if not math.isfinite(value) or value < 0:
        raise ValueError("Device usage must be a finite, non-negative flow.")
    return value


def _required_label(field: str, value: str) -> str:
    candidate = value.strip()
    if not candidate:
        raise ValueError(f"Device {field} must not be empty.")
    return candidate


@lru_cache
def build_default_monitor() -> MonitorService:
    """Factory that wires the monitor with settings-driven defaults."""
    settings = get_settings()
    return MonitorService(
        store=build_default_store(),
        aggregator=Aggregator(),
        detector=LeakDetector(
            threshold=settings.leak_threshold,
            critical_ratio=settings.leak_critical_ratio,
        ),
        notifier=Notifier(history_size=settings.alert_history_size),
    )
