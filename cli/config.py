from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_REPLAY_DELAY = 0.0

_BASE_URL_ENV = "API_BASE_URL"
_REPLAY_DELAY_ENV = "CLI_REPLAY_DELAY"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    replay_delay: float = DEFAULT_REPLAY_DELAY


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def load_config(
    base_url: Optional[str] = None,
    replay_delay: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if replay_delay is None:
        replay_delay = _read_float(os.getenv(_REPLAY_DELAY_ENV), DEFAULT_REPLAY_DELAY)
    return CLIConfig(
        base_url=url.rstrip("/"),
        replay_delay=replay_delay,
    )
