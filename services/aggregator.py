"""Aggregation logic for flow readings."""

from __future__ import annotations

import math
from numbers import Real

from app.schemas import UsagePeriod, UsageState
from models.errors import InvalidReading
from models.records import FlowReading

# Flow is scaled per elapsed hour, matching the dashboard's hourly approximation.
SECONDS_PER_HOUR = 3600.0


def _check_quantity(field: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidReading(field, value, "not a number")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidReading(field, value, "not finite")
    if number < 0:
        raise InvalidReading(field, value, "negative")
    return number


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def accumulate(self, state: UsageState, reading: FlowReading) -> UsageState:
        """Fold one reading into the usage totals and return the new state.

        Raises ``InvalidReading`` before touching anything when the flow rate
        or interval is negative, non-finite, or not numeric, and when the
        resulting totals would overflow.
        """
        flow_rate = _check_quantity("flow_rate", reading.flow_rate)
        elapsed = _check_quantity("elapsed_seconds", reading.elapsed_seconds)
        volume = flow_rate * (elapsed / SECONDS_PER_HOUR)
        daily = state.daily_usage + volume
        monthly = state.monthly_usage + volume
        if not (math.isfinite(volume) and math.isfinite(daily) and math.isfinite(monthly)):
            raise InvalidReading("flow_rate", reading.flow_rate, "usage totals would overflow")

        return state.model_copy(
            update={
                "current_usage": flow_rate,
                "daily_usage": daily,
                "monthly_usage": monthly,
            }
        )

    def reset(self, state: UsageState, period: UsagePeriod) -> UsageState:
        # A new month always starts a new day as well.
        if period is UsagePeriod.monthly:
            return state.model_copy(update={"daily_usage": 0.0, "monthly_usage": 0.0})
        return state.model_copy(update={"daily_usage": 0.0})
