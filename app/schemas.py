"""Pydantic schemas for household state, alerts, and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceStatus(str, Enum):
    """Whether a registered device is currently in use."""

    active = "active"
    inactive = "inactive"


class UsagePeriod(str, Enum):
    """Accumulation periods that an external scheduler may reset."""

    daily = "daily"
    monthly = "monthly"


class LeakEventType(str, Enum):
    leak_started = "leak_started"
    leak_cleared = "leak_cleared"


class LeakSeverity(str, Enum):
    warning = "warning"
    critical = "critical"


class Device(CamelModel):
    """A water-consuming fixture registered to the household."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    name: str
    status: DeviceStatus = DeviceStatus.active
    usage: float = Field(0.0, ge=0, allow_inf_nan=False, description="Last known flow in L/min.")
    location: str


class UsageState(CamelModel):
    """Immutable snapshot of the household's aggregate usage."""

    model_config = ConfigDict(frozen=True)

    current_usage: float = Field(..., ge=0, allow_inf_nan=False, description="Most recent flow in L/min.")
    daily_usage: float = Field(..., ge=0, allow_inf_nan=False, description="Litres accumulated today.")
    monthly_usage: float = Field(..., ge=0, allow_inf_nan=False, description="Litres accumulated this month.")
    leak_detected: bool = False
    devices: Tuple[Device, ...] = ()

    def find_device(self, device_id: int) -> Optional[Device]:
        for device in self.devices:
            if device.id == device_id:
                return device
        return None


class LeakEvent(CamelModel):
    """Edge-triggered leak notification for the presentation layer."""

    model_config = ConfigDict(frozen=True)

    type: LeakEventType
    location: str
    severity: Optional[LeakSeverity] = None
    flow_rate: float
    threshold: float
    device_id: Optional[int] = None
    device_name: Optional[str] = None
    occurred_at: datetime


class ReadingRequest(CamelModel):
    """Single flow reading submitted by an external source."""

    flow_rate: float = Field(..., description="Instantaneous flow in L/min.")
    elapsed_seconds: float = Field(..., description="Seconds since the previous reading.")
    device_id: Optional[int] = None
    recorded_at: Optional[datetime] = Field(default=None, description="When the sensor sampled the flow.")


class ReadingResponse(CamelModel):
    """Committed state after a reading, plus any alert transition it caused."""

    state: UsageState
    event: Optional[LeakEvent] = None


class DeviceCreate(CamelModel):
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    status: DeviceStatus = DeviceStatus.active
    usage: float = Field(0.0, ge=0, allow_inf_nan=False)


class DeviceUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    status: Optional[DeviceStatus] = None
    usage: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class UsageResetRequest(CamelModel):
    period: UsagePeriod


class AlertHistory(CamelModel):
    events: List[LeakEvent] = Field(default_factory=list)
