"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.schemas import (
    AlertHistory,
    Device,
    DeviceCreate,
    DeviceUpdate,
    ReadingRequest,
    ReadingResponse,
    UsageResetRequest,
    UsageState,
)
from models.errors import InvalidReading
from models.records import FlowReading
from services.monitor import MonitorService, build_default_monitor

router = APIRouter()


def get_monitor() -> MonitorService:
    return build_default_monitor()


@router.get(
    "/state",
    response_model=UsageState,
    summary="Current household usage snapshot.",
)
async def get_state(monitor: MonitorService = Depends(get_monitor)) -> UsageState:
    return monitor.state


@router.post(
    "/readings",
    response_model=ReadingResponse,
    summary="Apply a flow reading and return the committed snapshot.",
)
async def post_reading(
    payload: ReadingRequest,
    monitor: MonitorService = Depends(get_monitor),
) -> ReadingResponse:
    reading = FlowReading(
        flow_rate=payload.flow_rate,
        elapsed_seconds=payload.elapsed_seconds,
        device_id=payload.device_id,
        recorded_at=payload.recorded_at,
    )
    try:
        result = monitor.update(reading)
    except InvalidReading as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ReadingResponse(state=result.state, event=result.event)


@router.get(
    "/alerts",
    response_model=AlertHistory,
    summary="Most recent leak transitions, oldest first.",
)
async def get_alerts(
    limit: int | None = Query(default=None, ge=1),
    monitor: MonitorService = Depends(get_monitor),
) -> AlertHistory:
    return AlertHistory(events=monitor.notifier.recent_alerts(limit))


@router.get(
    "/devices",
    response_model=List[Device],
    summary="Registered devices in registration order.",
)
async def list_devices(monitor: MonitorService = Depends(get_monitor)) -> List[Device]:
    return list(monitor.state.devices)


@router.post(
    "/devices",
    response_model=Device,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new device.",
)
async def create_device(
    payload: DeviceCreate,
    monitor: MonitorService = Depends(get_monitor),
) -> Device:
    try:
        return monitor.add_device(
            name=payload.name,
            location=payload.location,
            status=payload.status,
            usage=payload.usage,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.patch(
    "/devices/{device_id}",
    response_model=Device,
    summary="Rename, relocate, or toggle a device.",
)
async def patch_device(
    device_id: int,
    payload: DeviceUpdate,
    monitor: MonitorService = Depends(get_monitor),
) -> Device:
    try:
        return monitor.update_device(
            device_id,
            name=payload.name,
            location=payload.location,
            status=payload.status,
            usage=payload.usage,
        )
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.delete(
    "/devices/{device_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a device.",
)
async def delete_device(
    device_id: int,
    monitor: MonitorService = Depends(get_monitor),
) -> Response:
    try:
        monitor.remove_device(device_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/usage/reset",
    response_model=UsageState,
    summary="Zero the daily or monthly totals at a calendar boundary.",
)
async def reset_usage(
    payload: UsageResetRequest,
    monitor: MonitorService = Depends(get_monitor),
) -> UsageState:
    return monitor.reset_usage(payload.period)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(monitor: MonitorService = Depends(get_monitor)) -> dict[str, str]:
    return {
        "status": "ok",
        "persistence": "ok" if monitor.persistence_healthy else "degraded",
    }


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
