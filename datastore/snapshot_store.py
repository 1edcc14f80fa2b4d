from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.schemas import UsageState
from models.errors import PersistenceError
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT: Dict[str, Any] = {
    "currentUsage": 25.4,
    "dailyUsage": 180.5,
    "monthlyUsage": 4200,
    "leakDetected": False,
    "devices": [
        {"id": 1, "name": "Kitchen Sink", "status": "active", "usage": 25.4, "location": "Kitchen"},
        {"id": 2, "name": "Bathroom Shower", "status": "active", "usage": 0, "location": "Bathroom"},
        {"id": 3, "name": "Garden Sprinkler", "status": "inactive", "usage": 0, "location": "Garden"},
        {"id": 4, "name": "Washing Machine", "status": "active", "usage": 12.8, "location": "Laundry"},
    ],
}


def default_usage_state() -> UsageState:
    """Snapshot used when no household state has been stored yet."""
    return UsageState.model_validate(DEFAULT_SNAPSHOT)


class SnapshotStore:
    """Single-key store holding the household's latest committed snapshot.

    Without a ``persistence_path`` the snapshot only lives in memory. With one,
    every ``save`` rewrites the JSON file before returning.
    """

    def __init__(self, key: str, persistence_path: Optional[Path] = None) -> None:
        self.key = key
        self.persistence_path = persistence_path
        self._snapshot: Optional[UsageState] = None
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def load(self) -> Optional[UsageState]:
        """Return the stored snapshot, or ``None`` when nothing was saved yet."""

        with self._lock:
            return self._snapshot

    def save(self, state: UsageState) -> None:
        with self._lock:
            try:
                self._persist(state)
            except OSError as exc:
                raise PersistenceError(
                    f"Could not write snapshot {self.key!r} to {self.persistence_path}: {exc}"
                ) from exc
            self._snapshot = state

    def load_or_initialize(self) -> UsageState:
        """Return the stored snapshot, saving the default one on first use."""

        snapshot = self.load()
        if snapshot is not None:
            return snapshot

        snapshot = default_usage_state()
        logger.info(
            "No stored snapshot found, initializing defaults",
            extra={"store_path": self.persistence_path},
        )
        self.save(snapshot)
        return snapshot

    def _persist(self, state: UsageState) -> None:
        if not self.persistence_path:
            return
        payload = {self.key: state.model_dump(mode="json", by_alias=True)}
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        staging.write_text(json.dumps(payload, indent=2, sort_keys=True))
        staging.replace(self.persistence_path)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Ignoring unreadable snapshot file",
                extra={"store_path": self.persistence_path, "reason": str(exc)},
            )
            return

        payload = data.get(self.key) if isinstance(data, dict) else None
        if payload is None:
            return

        try:
            self._snapshot = UsageState.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "Ignoring invalid snapshot record",
                extra={"store_path": self.persistence_path, "reason": f"{exc.error_count()} validation errors"},
            )


@lru_cache
def build_default_store(
    key: Optional[str] = None,
    path: Optional[str] = None,
) -> SnapshotStore:
    settings = get_settings()
    store_key = settings.store_key if key is None else key
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return SnapshotStore(key=store_key, persistence_path=persistence)
