"""Reservation, availability, and session data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, model_validator

from evcharge.schemas.station_schema import WireModel
from evcharge.utils import intervals_overlap


class ReservationStatus(str, Enum):
    """All possible states in a reservation lifecycle."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold a connector and take part in overlap checks
BLOCKING_STATUSES: frozenset[ReservationStatus] = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.ACTIVE,
})

TERMINAL_STATUSES: frozenset[ReservationStatus] = frozenset({
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
})


class VehicleInfo(WireModel):
    """Optional, informational vehicle details."""
    model_config = ConfigDict(frozen=True)

    make: Optional[str] = None
    model: Optional[str] = None
    battery_capacity: Optional[float] = Field(default=None, ge=0)
    current_charge: Optional[float] = Field(default=None, ge=0, le=100)


class SessionMetrics(WireModel):
    """Final metrics attached when a charging session completes."""
    model_config = ConfigDict(frozen=True)

    energy_delivered_kwh: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    duration_minutes: Optional[float] = Field(default=None, ge=0)


class Reservation(WireModel):
    """
    A time-boxed booking of one connector of a given type at a station.

    Instances are immutable; the store replaces a row with a copy on
    every status change and bumps ``version``.
    """
    model_config = ConfigDict(frozen=True)

    reservation_id: str
    user_id: str
    station_id: str
    connector_type: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    vehicle_info: Optional[VehicleInfo] = None
    notes: Optional[str] = None
    estimated_cost: float = 0.0
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    session: Optional[SessionMetrics] = None
    version: int = 1

    @model_validator(mode="after")
    def _check_window(self) -> "Reservation":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.start_time, self.end_time, start, end)


class ReservationRequest(WireModel):
    """Validated body of a create-reservation request."""
    station_id: str = Field(min_length=1)
    connector_type: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    vehicle_info: Optional[VehicleInfo] = None
    notes: Optional[str] = None


class AvailabilityResult(WireModel):
    """Result of an availability check for one connector group and window."""
    available: bool
    total_connectors: int
    occupied_connectors: int
    station_id: str
    connector_type: str
    start_time: datetime
    end_time: datetime


class ReservationAnalytics(WireModel):
    """Per-user reservation summary over a trailing period."""
    period_days: int
    total_reservations: int
    by_status: dict[str, int] = Field(default_factory=dict)
    completed_sessions: int = 0
    total_energy_kwh: float = 0.0
    total_cost: float = 0.0
