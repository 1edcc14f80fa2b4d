from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _litres(value: Any) -> str:
    if isinstance(value, (int, float)):
        return f"{value:.2f}"
    return str(value)


def render_state(payload: Dict[str, Any]) -> None:
    echo_heading("Household Usage")
    echo_key_values(
        [
            ("current_usage_lpm", _litres(payload.get("currentUsage"))),
            ("daily_usage_l", _litres(payload.get("dailyUsage"))),
            ("monthly_usage_l", _litres(payload.get("monthlyUsage"))),
            ("leak_detected", payload.get("leakDetected")),
        ]
    )
    if payload.get("leakDetected"):
        typer.secho("LEAK DETECTED: check fixtures immediately.", fg=typer.colors.RED, bold=True)

    typer.echo()
    render_devices(payload.get("devices") or [])


def render_devices(devices: List[Dict[str, Any]]) -> None:
    echo_heading("Devices")
    if not devices:
        typer.echo("No devices registered.")
        return
    for device in devices:
        typer.echo(
            f"  - [{device.get('id')}] {device.get('name')} "
            f"({device.get('location')}) {device.get('status')} "
            f"{_litres(device.get('usage'))} L/min"
        )


def render_event(event: Dict[str, Any]) -> None:
    kind = event.get("type")
    where = event.get("deviceName") or event.get("location")
    flow = _litres(event.get("flowRate"))
    if kind == "leak_started":
        typer.secho(
            f"{event.get('occurredAt')} LEAK STARTED at {where}: {flow} L/min "
            f"(severity={event.get('severity')})",
            fg=typer.colors.RED,
        )
    else:
        typer.secho(
            f"{event.get('occurredAt')} leak cleared at {where}: {flow} L/min",
            fg=typer.colors.GREEN,
        )


def render_alerts(events: List[Dict[str, Any]]) -> None:
    echo_heading("Alerts")
    if not events:
        typer.echo("No alerts recorded.")
        return
    for event in events:
        render_event(event)
