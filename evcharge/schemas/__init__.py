from evcharge.schemas.reservation_schema import (
    AvailabilityResult,
    Reservation,
    ReservationAnalytics,
    ReservationRequest,
    ReservationStatus,
    SessionMetrics,
    VehicleInfo,
)
from evcharge.schemas.station_schema import (
    Connector,
    Coordinate,
    FormattedDistance,
    Station,
    StationWithDistance,
)

__all__ = [
    "AvailabilityResult",
    "Reservation",
    "ReservationAnalytics",
    "ReservationRequest",
    "ReservationStatus",
    "SessionMetrics",
    "VehicleInfo",
    "Connector",
    "Coordinate",
    "FormattedDistance",
    "Station",
    "StationWithDistance",
]
