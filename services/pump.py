"""Drives readings from a source through the monitor, one at a time."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from app.schemas import LeakEvent
from models.errors import InvalidReading
from models.records import FlowReading
from services.monitor import MonitorService
from services.sources import ReadingSource

logger = logging.getLogger(__name__)


@dataclass
class IngestSummary:
    accepted: int = 0
    rejected: int = 0
    events: List[LeakEvent] = field(default_factory=list)


def ingest(monitor: MonitorService, readings: Iterable[FlowReading]) -> IngestSummary:
    """Feed a finite batch of readings, skipping the ones the monitor rejects."""
    summary = IngestSummary()
    for reading in readings:
        try:
            result = monitor.update(reading)
        except InvalidReading:
            summary.rejected += 1
            continue
        summary.accepted += 1
        if result.event is not None:
            summary.events.append(result.event)

    logger.info(
        "Batch ingested",
        extra={"accepted": summary.accepted, "rejected": summary.rejected},
    )
    return summary


class ReadingPump:
    """Pulls a reading every ``interval_seconds`` and applies it to the monitor.

    Updates run synchronously on the event loop, so a stop request can only
    take effect between two complete updates.
    """

    def __init__(
        self,
        monitor: MonitorService,
        source: ReadingSource,
        interval_seconds: float,
    ) -> None:
        self.monitor = monitor
        self.source = source
        self.interval_seconds = interval_seconds
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self.running:
            raise RuntimeError("Reading pump is already running.")
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        logger.info("Reading pump started", extra={"elapsed_seconds": self.interval_seconds})
        while not self._stop.is_set():
            self.step()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.info("Reading pump stopped")

    def step(self) -> None:
        reading = self.source.next_reading()
        try:
            self.monitor.update(reading)
        except InvalidReading:
            # Already logged by the monitor; the pump keeps going.
            pass
