from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "HOUSEHOLD_STORE_PATH"
_STORE_KEY_ENV = "HOUSEHOLD_STORE_KEY"
_THRESHOLD_ENV = "LEAK_THRESHOLD_LPM"
_CRITICAL_RATIO_ENV = "LEAK_CRITICAL_RATIO"
_ALERT_HISTORY_ENV = "ALERT_HISTORY_SIZE"
_SIMULATOR_ENABLED_ENV = "SIMULATOR_ENABLED"
_SIMULATOR_INTERVAL_ENV = "SIMULATOR_INTERVAL_SECONDS"
_SIMULATOR_MIN_ENV = "SIMULATOR_MIN_LPM"
_SIMULATOR_MAX_ENV = "SIMULATOR_MAX_LPM"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    store_key: str
    leak_threshold: float
    leak_critical_ratio: float
    alert_history_size: int
    simulator_enabled: bool
    simulator_interval: float
    simulator_min: float
    simulator_max: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, minimum: float = 0.0) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if not math.isfinite(parsed) or parsed < minimum:
        return default
    return parsed


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    simulator_min = _read_float(_SIMULATOR_MIN_ENV, 10.0)
    simulator_max = _read_float(_SIMULATOR_MAX_ENV, 60.0)
    if simulator_max < simulator_min:
        simulator_min, simulator_max = 10.0, 60.0
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/household.json"),
        store_key=_read_str_env(_STORE_KEY_ENV, "waterMonitoringData"),
        leak_threshold=_read_float(_THRESHOLD_ENV, 45.0),
        leak_critical_ratio=_read_float(_CRITICAL_RATIO_ENV, 1.25, minimum=1.0),
        alert_history_size=_read_positive_int(_ALERT_HISTORY_ENV, 50),
        simulator_enabled=_read_bool(_SIMULATOR_ENABLED_ENV, True),
        simulator_interval=_read_float(_SIMULATOR_INTERVAL_ENV, 3.0, minimum=0.01),
        simulator_min=simulator_min,
        simulator_max=simulator_max,
        log_level=_read_log_level("INFO"),
    )
