from evcharge.reservations.manager import ReservationManager
from evcharge.reservations.state_machine import (
    ReservationAction,
    next_status,
    valid_actions,
)

__all__ = [
    "ReservationManager",
    "ReservationAction",
    "next_status",
    "valid_actions",
]
