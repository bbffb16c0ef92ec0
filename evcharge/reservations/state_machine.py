"""
Finite state machine for the reservation lifecycle.

Five statuses, four actions, and an explicit transition table. Anything
not listed is rejected, including repeating a transition that already
happened, so a retrying client can tell "already done" from "just done".

Usage:
    next_status(ReservationStatus.PENDING, ReservationAction.CONFIRM)
    # -> ReservationStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from evcharge.errors import InvalidTransitionError
from evcharge.schemas.reservation_schema import TERMINAL_STATUSES, ReservationStatus

logger = logging.getLogger(__name__)


class ReservationAction(str, Enum):
    """Operations that move a reservation between statuses."""
    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: ReservationStatus
    to_status: ReservationStatus
    action: ReservationAction


TRANSITIONS: tuple[Transition, ...] = (
    # --- Forward path ---
    Transition(ReservationStatus.PENDING, ReservationStatus.CONFIRMED,
               ReservationAction.CONFIRM),
    Transition(ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE,
               ReservationAction.START),
    Transition(ReservationStatus.ACTIVE, ReservationStatus.COMPLETED,
               ReservationAction.COMPLETE),

    # --- Cancellation from any non-terminal status ---
    Transition(ReservationStatus.PENDING, ReservationStatus.CANCELLED,
               ReservationAction.CANCEL),
    Transition(ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED,
               ReservationAction.CANCEL),
    Transition(ReservationStatus.ACTIVE, ReservationStatus.CANCELLED,
               ReservationAction.CANCEL),
)


def valid_actions(status: ReservationStatus) -> list[ReservationAction]:
    """Return all actions valid from a status."""
    return [t.action for t in TRANSITIONS if t.from_status == status]


def is_terminal(status: ReservationStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_status(current: ReservationStatus, action: ReservationAction) -> ReservationStatus:
    """
    Resolve the status an action leads to.

    Raises:
        InvalidTransitionError: If the action is not valid from ``current``.
    """
    for t in TRANSITIONS:
        if t.from_status == current and t.action == action:
            logger.debug(
                "Status transition: %s -> %s (action: %s)",
                current.value, t.to_status.value, action.value,
            )
            return t.to_status

    valid = [a.value for a in valid_actions(current)]
    raise InvalidTransitionError(
        f"Cannot {action.value} a reservation that is '{current.value}'. "
        f"Valid actions: {valid}",
        details={"current_status": current.value, "valid_actions": valid},
    )
