"""
Connector availability checks.

A station can have several physical connectors of one type. A window is
available while the number of overlapping pending/confirmed/active
reservations on that connector group stays below the connector count.
Checks always read the store at call time.
"""

import logging
from datetime import datetime

from evcharge.errors import InvalidWindowError
from evcharge.schemas.reservation_schema import BLOCKING_STATUSES, AvailabilityResult
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore
from evcharge.utils import ensure_aware

logger = logging.getLogger(__name__)


def validate_window(start: datetime, end: datetime) -> None:
    """Reject naive or empty/inverted windows."""
    ensure_aware(start, "start_time")
    ensure_aware(end, "end_time")
    if start >= end:
        raise InvalidWindowError(
            "Start time must be before end time.",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )


class AvailabilityChecker:
    """Query-only overlap counter for a (station, connector type) group."""

    def __init__(self, catalog: StationCatalog, store: ReservationStore) -> None:
        self._catalog = catalog
        self._store = store

    def check(
        self, station_id: str, connector_type: str, start: datetime, end: datetime
    ) -> AvailabilityResult:
        """
        Check whether one more reservation fits in ``[start, end)``.

        Raises:
            InvalidWindowError: Naive datetimes or start >= end.
            NotFoundError: Unknown station, or no connectors of that type.
        """
        validate_window(start, end)
        canonical = self._catalog.resolve_connector_type(station_id, connector_type)
        total = self._catalog.connector_count(station_id, canonical)
        overlapping = self._store.overlapping(
            station_id, canonical, start, end, BLOCKING_STATUSES
        )
        occupied = len(overlapping)

        logger.debug(
            "Availability %s/%s [%s, %s): %d of %d occupied",
            station_id, canonical, start.isoformat(), end.isoformat(), occupied, total,
        )
        return AvailabilityResult(
            available=occupied < total,
            total_connectors=total,
            occupied_connectors=min(occupied, total),
            station_id=station_id,
            connector_type=canonical,
            start_time=start,
            end_time=end,
        )
