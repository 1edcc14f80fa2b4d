from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from app.schemas import DeviceStatus, UsagePeriod
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_devices, render_event, render_state
from services.sources import CsvReadingSource


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the household water monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show current usage totals, leak state, and devices."""
    state = _get_state(ctx)
    render_state(state.client.get_state())


@app.command("send")
def send_command(
    ctx: typer.Context,
    flow_rate: float = typer.Argument(..., help="Flow rate in L/min."),
    elapsed: float = typer.Option(3.0, "--elapsed", "-e", help="Seconds since the previous reading."),
    device_id: Optional[int] = typer.Option(None, "--device", "-d", help="Device the flow belongs to."),
) -> None:
    """Submit a single flow reading."""
    state = _get_state(ctx)
    payload = state.client.send_reading(flow_rate, elapsed, device_id)
    if payload is None:
        raise typer.Exit(code=1)
    if payload.get("event"):
        render_event(payload["event"])
    render_state(payload["state"])


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Show only the latest N alerts."),
) -> None:
    """List recent leak transitions."""
    state = _get_state(ctx)
    render_alerts(state.client.get_alerts(limit))


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List registered devices."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices())


@app.command("add-device")
def add_device_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Device label, e.g. 'Kitchen Sink'."),
    location: str = typer.Argument(..., help="Room the device is in."),
    status: DeviceStatus = typer.Option(DeviceStatus.active, "--status", help="Initial device status."),
) -> None:
    """Register a new device."""
    state = _get_state(ctx)
    device = state.client.add_device(name, location, status.value)
    typer.secho(f"Device registered. id={device.get('id')}", fg=typer.colors.GREEN)


@app.command("reset")
def reset_command(
    ctx: typer.Context,
    period: UsagePeriod = typer.Argument(..., help="Accumulation period to zero."),
) -> None:
    """Zero daily or monthly totals at a calendar boundary."""
    state = _get_state(ctx)
    payload = state.client.reset_usage(period.value)
    typer.secho(f"{period.value.capitalize()} usage reset.", fg=typer.colors.GREEN)
    render_state(payload)


@app.command("replay")
def replay_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
    delay: Optional[float] = typer.Option(
        None,
        "--delay",
        help="Seconds to wait between readings (defaults to CLI_REPLAY_DELAY or 0).",
    ),
) -> None:
    """Send every reading in a CSV file to the service, in order."""
    state = _get_state(ctx)
    pause = delay if delay is not None else state.config.replay_delay

    accepted = rejected = 0
    with file.open("r", encoding="utf-8", newline="") as handle:
        source = CsvReadingSource(handle)
        try:
            for reading in source:
                payload = state.client.send_reading(
                    reading.flow_rate,
                    reading.elapsed_seconds,
                    reading.device_id,
                    recorded_at=reading.recorded_at,
                )
                if payload is None:
                    rejected += 1
                else:
                    accepted += 1
                    if payload.get("event"):
                        render_event(payload["event"])
                if pause:
                    time.sleep(pause)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc

    for error in source.errors:
        typer.secho(f"  - row {error.row_number}: {error.reason}", fg=typer.colors.YELLOW, err=True)
    typer.echo(
        f"Replayed {accepted} readings ({rejected} rejected, {len(source.errors)} unparseable rows)."
    )
