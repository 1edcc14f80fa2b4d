"""Unit tests for the aggregation logic."""

from __future__ import annotations

import math

import pytest

from app.schemas import UsagePeriod, UsageState
from datastore.snapshot_store import default_usage_state
from models.errors import InvalidReading
from models.records import FlowReading
from services.aggregator import Aggregator


def _empty_state() -> UsageState:
    return UsageState(current_usage=0.0, daily_usage=0.0, monthly_usage=0.0)


def test_accumulate_scales_flow_by_elapsed_hours() -> None:
    aggregator = Aggregator()

    state = aggregator.accumulate(_empty_state(), FlowReading(flow_rate=36.0, elapsed_seconds=100.0))

    assert state.current_usage == 36.0
    assert state.daily_usage == pytest.approx(1.0)
    assert state.monthly_usage == pytest.approx(1.0)


def test_accumulate_returns_new_value_and_keeps_devices() -> None:
    aggregator = Aggregator()
    original = default_usage_state()

    updated = aggregator.accumulate(original, FlowReading(flow_rate=12.0, elapsed_seconds=3.0))

    assert updated is not original
    assert original.current_usage == 25.4
    assert original.daily_usage == 180.5
    assert updated.devices == original.devices
    assert updated.daily_usage == pytest.approx(180.5 + 12.0 * 3.0 / 3600)
    assert updated.monthly_usage == pytest.approx(4200 + 12.0 * 3.0 / 3600)


def test_totals_never_decrease_for_valid_readings() -> None:
    aggregator = Aggregator()
    state = _empty_state()
    previous_daily = previous_monthly = 0.0

    for flow, elapsed in [(0.0, 3.0), (15.5, 3.0), (60.0, 0.0), (0.0, 10.0), (45.1, 2.5)]:
        state = aggregator.accumulate(state, FlowReading(flow_rate=flow, elapsed_seconds=elapsed))
        assert state.daily_usage >= previous_daily
        assert state.monthly_usage >= previous_monthly
        previous_daily, previous_monthly = state.daily_usage, state.monthly_usage


@pytest.mark.parametrize("flow_rate", [-5.0, math.nan, math.inf, -math.inf, "12", None, True])
def test_accumulate_rejects_bad_flow_rate(flow_rate) -> None:
    aggregator = Aggregator()

    with pytest.raises(InvalidReading) as excinfo:
        aggregator.accumulate(_empty_state(), FlowReading(flow_rate=flow_rate, elapsed_seconds=1.0))

    assert excinfo.value.field == "flow_rate"


@pytest.mark.parametrize("elapsed", [-1.0, math.nan, math.inf])
def test_accumulate_rejects_bad_elapsed_interval(elapsed) -> None:
    aggregator = Aggregator()

    with pytest.raises(InvalidReading) as excinfo:
        aggregator.accumulate(_empty_state(), FlowReading(flow_rate=10.0, elapsed_seconds=elapsed))

    assert excinfo.value.field == "elapsed_seconds"


def test_reset_daily_keeps_monthly_total() -> None:
    state = Aggregator().reset(default_usage_state(), UsagePeriod.daily)

    assert state.daily_usage == 0.0
    assert state.monthly_usage == 4200


def test_reset_monthly_clears_both_totals() -> None:
    state = Aggregator().reset(default_usage_state(), UsagePeriod.monthly)

    assert state.daily_usage == 0.0
    assert state.monthly_usage == 0.0
    assert state.current_usage == 25.4


def test_accumulate_rejects_readings_that_overflow_totals() -> None:
    aggregator = Aggregator()
    state = _empty_state()

    with pytest.raises(InvalidReading) as excinfo:
        aggregator.accumulate(state, FlowReading(flow_rate=1e308, elapsed_seconds=1e308))

    assert "overflow" in str(excinfo.value)
    assert state.daily_usage == 0.0


def test_accumulate_rejects_total_overflow_from_large_history() -> None:
    aggregator = Aggregator()
    state = UsageState(current_usage=0.0, daily_usage=1.79e308, monthly_usage=1.79e308)

    with pytest.raises(InvalidReading):
        aggregator.accumulate(state, FlowReading(flow_rate=3600.0, elapsed_seconds=1e307))
