"""Reading sources that feed the monitor."""

from __future__ import annotations

import csv
import logging
import random
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Protocol, TextIO

from models.records import FlowReading, RowError

logger = logging.getLogger(__name__)


class ReadingSource(Protocol):
    """Anything that can hand out the next flow reading on demand."""

    def next_reading(self) -> FlowReading: ...


class SyntheticReadingSource:
    """Uniformly distributed readings standing in for a real flow sensor."""

    def __init__(
        self,
        interval_seconds: float = 3.0,
        minimum: float = 10.0,
        maximum: float = 60.0,
        rng: Optional[random.Random] = None,
        device_id: Optional[int] = None,
    ) -> None:
        if minimum < 0 or maximum < minimum:
            raise ValueError("Synthetic flow range must satisfy 0 <= minimum <= maximum.")
        self.interval_seconds = interval_seconds
        self.minimum = minimum
        self.maximum = maximum
        self.device_id = device_id
        self._rng = rng or random.Random()

    def next_reading(self) -> FlowReading:
        return FlowReading(
            flow_rate=self._rng.uniform(self.minimum, self.maximum),
            elapsed_seconds=self.interval_seconds,
            device_id=self.device_id,
            recorded_at=datetime.now(timezone.utc),
        )


class CsvReadingSource:
    """Replays readings from CSV text.

    ``flow_rate`` is required, along with ``timestamp`` or ``elapsed_seconds``.
    An ``elapsed_seconds`` cell wins; otherwise the interval is the gap since
    the previous valid timestamp, and ``initial_elapsed`` for the first row.
    Unparseable rows are collected in ``errors`` and skipped.
    """

    def __init__(self, stream: TextIO, initial_elapsed: float = 0.0) -> None:
        self._stream = stream
        self.initial_elapsed = initial_elapsed
        self.errors: List[RowError] = []

    def __iter__(self) -> Iterator[FlowReading]:
        reader = csv.DictReader(self._stream)

        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames}
        if "flow_rate" not in normalized:
            raise ValueError("CSV missing required columns: flow_rate")
        if "timestamp" not in normalized and "elapsed_seconds" not in normalized:
            raise ValueError("CSV needs a timestamp or elapsed_seconds column.")

        flow_col = normalized["flow_rate"]
        timestamp_col = normalized.get("timestamp")
        elapsed_col = normalized.get("elapsed_seconds")
        device_col = normalized.get("device_id")

        previous: Optional[datetime] = None
        for row_number, row in enumerate(reader, start=2):
            flow_raw = (row.get(flow_col) or "").strip()
            timestamp_raw = (row.get(timestamp_col) or "").strip() if timestamp_col else ""
            elapsed_raw = (row.get(elapsed_col) or "").strip() if elapsed_col else ""
            device_raw = (row.get(device_col) or "").strip() if device_col else ""

            if not flow_raw:
                self._skip(row_number, "missing flow_rate")
                continue
            try:
                flow_rate = float(flow_raw)
            except ValueError:
                self._skip(row_number, "invalid flow_rate")
                continue

            timestamp: Optional[datetime] = None
            if timestamp_raw:
                try:
                    timestamp = self._parse_timestamp(timestamp_raw)
                except ValueError:
                    self._skip(row_number, "invalid timestamp")
                    continue

            if elapsed_raw:
                try:
                    elapsed = float(elapsed_raw)
                except ValueError:
                    self._skip(row_number, "invalid elapsed_seconds")
                    continue
            elif timestamp is not None:
                if previous is None:
                    elapsed = self.initial_elapsed
                elif timestamp < previous:
                    self._skip(row_number, "timestamp out of order")
                    continue
                else:
                    elapsed = (timestamp - previous).total_seconds()
            else:
                self._skip(row_number, "missing timestamp")
                continue

            device_id: Optional[int] = None
            if device_raw:
                try:
                    device_id = int(device_raw)
                except ValueError:
                    self._skip(row_number, "invalid device_id")
                    continue

            if timestamp is not None:
                previous = timestamp

            yield FlowReading(
                flow_rate=flow_rate,
                elapsed_seconds=elapsed,
                device_id=device_id,
                recorded_at=timestamp,
            )

    def _skip(self, row_number: int, reason: str) -> None:
        self.errors.append(RowError(row_number=row_number, reason=reason))
        logger.warning(
            "Skipping row %s: %s",
            row_number,
            reason,
            extra={"row_number": row_number, "reason": reason},
        )

    @staticmethod
    def _parse_timestamp(value: str) -> datetime:
        candidate = value.strip()
        if not candidate:
            raise ValueError("Timestamp is empty.")

        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError("Invalid timestamp format") from exc

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

        return parsed.astimezone(timezone.utc)
