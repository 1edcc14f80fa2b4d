import asyncio
import io
import logging
import random

import pytest

from datastore.snapshot_store import SnapshotStore
from models.records import FlowReading
from services.aggregator import Aggregator
from services.detector import LeakDetector
from services.monitor import MonitorService
from services.notifier import Notifier
from services.pump import ReadingPump, ingest
from services.sources import CsvReadingSource, SyntheticReadingSource


def _build_monitor() -> MonitorService:
    return MonitorService(
        store=SnapshotStore(key="test"),
        aggregator=Aggregator(),
        detector=LeakDetector(threshold=45.0),
        notifier=Notifier(),
    )


class ScriptedSource:
    def __init__(self, flows) -> None:
        self._flows = list(flows)
        self.calls = 0

    def next_reading(self) -> FlowReading:
        flow = self._flows[min(self.calls, len(self._flows) - 1)]
        self.calls += 1
        return FlowReading(flow_rate=flow, elapsed_seconds=1.0)


def test_synthetic_source_stays_in_range() -> None:
    source = SyntheticReadingSource(interval_seconds=3.0, rng=random.Random(7))

    readings = [source.next_reading() for _ in range(200)]

    assert all(10.0 <= reading.flow_rate <= 60.0 for reading in readings)
    assert all(reading.elapsed_seconds == 3.0 for reading in readings)
    assert all(reading.recorded_at is not None for reading in readings)


def test_synthetic_source_is_reproducible_with_seed() -> None:
    first = SyntheticReadingSource(rng=random.Random(42))
    second = SyntheticReadingSource(rng=random.Random(42))

    assert [first.next_reading().flow_rate for _ in range(5)] == [
        second.next_reading().flow_rate for _ in range(5)
    ]


def test_synthetic_source_rejects_inverted_range() -> None:
    with pytest.raises(ValueError):
        SyntheticReadingSource(minimum=50.0, maximum=10.0)


def test_csv_source_derives_elapsed_from_timestamps() -> None:
    csv_body = (
        "timestamp,flow_rate,device_id\n"
        "2024-01-01T00:00:00Z,10,\n"
        "2024-01-01T00:00:03Z,20,1\n"
        "2024-01-01T00:00:05+00:00,30,\n"
    )
    source = CsvReadingSource(io.StringIO(csv_body), initial_elapsed=3.0)

    readings = list(source)

    assert [reading.flow_rate for reading in readings] == [10.0, 20.0, 30.0]
    assert [reading.elapsed_seconds for reading in readings] == [3.0, 3.0, 2.0]
    assert [reading.device_id for reading in readings] == [None, 1, None]
    assert source.errors == []


def test_csv_source_prefers_elapsed_column() -> None:
    csv_body = "flow_rate,elapsed_seconds\n12.5,1\n13.5,2.5\n"

    readings = list(CsvReadingSource(io.StringIO(csv_body)))

    assert [(reading.flow_rate, reading.elapsed_seconds) for reading in readings] == [
        (12.5, 1.0),
        (13.5, 2.5),
    ]


def test_csv_source_collects_row_errors(caplog) -> None:
    csv_body = (
        "timestamp,flow_rate,device_id\n"
        "2024-01-01T00:00:00Z,10,\n"
        "2024-01-01T00:00:01Z,,\n"
        "not-a-time,12,\n"
        "2024-01-01T00:00:02Z,abc,\n"
        "2024-01-01T00:00:03Z,11,kitchen\n"
        "2023-12-31T23:59:59Z,11,\n"
        "2024-01-01T00:00:04Z,14,\n"
    )
    source = CsvReadingSource(io.StringIO(csv_body))

    with caplog.at_level(logging.WARNING):
        readings = list(source)

    assert [reading.flow_rate for reading in readings] == [10.0, 14.0]
    assert readings[1].elapsed_seconds == 4.0
    assert [(error.row_number, error.reason) for error in source.errors] == [
        (3, "missing flow_rate"),
        (4, "invalid timestamp"),
        (5, "invalid flow_rate"),
        (6, "invalid device_id"),
        (7, "timestamp out of order"),
    ]
    records = [record for record in caplog.records if record.name == "services.sources"]
    assert any("Skipping row" in record.getMessage() for record in records)
    assert any(getattr(record, "row_number", None) == 4 for record in records)


def test_csv_source_requires_flow_column() -> None:
    with pytest.raises(ValueError, match="flow_rate"):
        list(CsvReadingSource(io.StringIO("timestamp,value\n2024-01-01T00:00:00Z,1\n")))


def test_csv_source_requires_time_column() -> None:
    with pytest.raises(ValueError):
        list(CsvReadingSource(io.StringIO("flow_rate\n1\n")))


def test_csv_source_requires_header() -> None:
    with pytest.raises(ValueError, match="header"):
        list(CsvReadingSource(io.StringIO("")))


def test_ingest_counts_accepted_rejected_and_events() -> None:
    monitor = _build_monitor()
    readings = [
        FlowReading(flow_rate=flow, elapsed_seconds=1.0)
        for flow in (10.0, -5.0, 50.0, float("nan"), 55.0, 20.0)
    ]

    summary = ingest(monitor, readings)

    assert summary.accepted == 4
    assert summary.rejected == 2
    assert [event.type.value for event in summary.events] == ["leak_started", "leak_cleared"]
    assert monitor.state.current_usage == 20.0


def test_pump_processes_readings_until_stopped() -> None:
    monitor = _build_monitor()
    source = ScriptedSource([12.0, -1.0, 50.0])
    seen = []
    monitor.notifier.subscribe_snapshots(lambda state: seen.append(state.current_usage))

    async def scenario() -> None:
        pump = ReadingPump(monitor, source, interval_seconds=0.01)
        pump.start()
        assert pump.running
        while source.calls < 5:
            await asyncio.sleep(0.005)
        await pump.stop()
        assert not pump.running

    asyncio.run(scenario())

    assert source.calls >= 5
    assert seen[0] == 12.0
    assert set(seen) == {12.0, 50.0}
    assert len(seen) == source.calls - 1
    assert monitor.state.leak_detected is True


def test_pump_refuses_double_start() -> None:
    monitor = _build_monitor()

    async def scenario() -> None:
        pump = ReadingPump(monitor, ScriptedSource([10.0]), interval_seconds=0.01)
        pump.start()
        try:
            with pytest.raises(RuntimeError):
                pump.start()
        finally:
            await pump.stop()

    asyncio.run(scenario())
