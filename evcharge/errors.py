"""
Error taxonomy for the reservation engine.

Domain errors are user-displayable and carry a stable ``code``. Transport
errors (timeout, unavailable) are marked ``retryable``. The engine raises
these; the HTTP gateway turns them into structured responses. Detail keys
are snake_case in Python and camelCase on the wire.
"""

from typing import Any, Optional

from pydantic.alias_generators import to_camel


class ReservationError(Exception):
    """Base class for every error the engine reports to a caller."""

    code: str = "reservation_error"
    http_status: int = 400
    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = {to_camel(key): value for key, value in self.details.items()}
        return payload


class InvalidWindowError(ReservationError):
    """Malformed or past-dated time range."""

    code = "invalid_window"
    http_status = 400


class InvalidRequestError(ReservationError):
    """Request fields failed validation (e.g. note too long)."""

    code = "invalid_request"
    http_status = 400


class SlotConflictError(ReservationError):
    """Requested window overlaps existing non-terminal reservations."""

    code = "slot_conflict"
    http_status = 409


class InvalidTransitionError(ReservationError):
    """Raised when a status change is not reachable from the current status."""

    code = "invalid_transition"
    http_status = 409


class NotFoundError(ReservationError):
    """Reservation, station, or connector type does not resolve."""

    code = "not_found"
    http_status = 404


class NotYetStartableError(ReservationError):
    """start() called before the reservation window opens."""

    code = "not_yet_startable"
    http_status = 409


class WindowExpiredError(ReservationError):
    """start() called at or after the reservation window closes."""

    code = "window_expired"
    http_status = 409


class UnauthorizedError(ReservationError):
    """Caller identity missing or invalid."""

    code = "unauthorized"
    http_status = 401


class RequestTimeoutError(ReservationError):
    """A bounded wait elapsed before the operation could run."""

    code = "timeout"
    http_status = 504
    retryable = True


class UnavailableError(ReservationError):
    """The storage backend cannot serve requests."""

    code = "unavailable"
    http_status = 503
    retryable = True
