from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def get_state(self) -> Dict[str, Any]:
        return self._request("GET", "/state")

    def send_reading(
        self,
        flow_rate: float,
        elapsed_seconds: float,
        device_id: Optional[int] = None,
        recorded_at: Optional[datetime] = None,
    ) -> Optional[Dict[str, Any]]:
        """Post a reading; returns ``None`` when the service rejects it."""
        body: Dict[str, Any] = {"flowRate": flow_rate, "elapsedSeconds": elapsed_seconds}
        if device_id is not None:
            body["deviceId"] = device_id
        if recorded_at is not None:
            body["recordedAt"] = recorded_at.isoformat()
        try:
            response = self._client.post("/readings", json=body)
            if response.status_code == 400:
                detail = response.json().get("detail")
                typer.secho(f"Reading rejected: {detail}", fg=typer.colors.YELLOW, err=True)
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_alerts(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit is not None else None
        payload = self._request("GET", "/alerts", params=params)
        return payload.get("events") or []

    def list_devices(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/devices")

    def add_device(self, name: str, location: str, status: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/devices",
            json={"name": name, "location": location, "status": status},
        )

    def reset_usage(self, period: str) -> Dict[str, Any]:
        return self._request("POST", "/usage/reset", json={"period": period})

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
