"""Shared utilities used across the reservation engine."""

from datetime import datetime
from typing import Union

from evcharge.errors import InvalidWindowError


def parse_instant(value: Union[str, datetime], field_name: str = "time") -> datetime:
    """Parse an ISO-8601 instant and require a timezone.

    Accepts a trailing ``Z`` as UTC, which is what JavaScript's
    ``toISOString()`` produces.

    Examples:
        >>> parse_instant("2025-03-18T14:00:00Z").isoformat()
        '2025-03-18T14:00:00+00:00'
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidWindowError(
                f"{field_name} is not a valid ISO-8601 instant: {value!r}"
            ) from None
    return ensure_aware(parsed, field_name)


def ensure_aware(value: datetime, field_name: str = "time") -> datetime:
    """Reject naive datetimes; instants on the wire must carry an offset."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise InvalidWindowError(f"{field_name} must be timezone-aware")
    return value


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap: [a, b) touching [b, c) does not overlap."""
    return start_a < end_b and start_b < end_a


def connector_key(connector_type: str) -> str:
    """Normalize a connector type for case-insensitive comparison.

    Examples:
        >>> connector_key("  CHAdeMO ")
        'chademo'
    """
    return " ".join(connector_type.split()).casefold()
