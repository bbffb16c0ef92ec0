"""
In-memory reservation store.

Reference implementation of the persistence contract the engine relies on:
per connector-group locks to serialise check-then-insert, and versioned
compare-and-set for status changes. A database-backed store must give the
same guarantees (e.g. a serializable transaction keyed on the group).
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from evcharge.config import settings
from evcharge.errors import InvalidTransitionError, NotFoundError, RequestTimeoutError, UnavailableError
from evcharge.schemas.reservation_schema import Reservation, ReservationStatus
from evcharge.utils import connector_key

logger = logging.getLogger(__name__)

GroupKey = tuple[str, str]


class ReservationStore:
    """Thread-safe store of reservation rows. Rows are never deleted."""

    def __init__(self, lock_timeout_sec: Optional[float] = None) -> None:
        self._lock_timeout = (
            settings.reservations.lock_timeout_sec if lock_timeout_sec is None else lock_timeout_sec
        )
        self._rows: dict[str, Reservation] = {}
        self._rows_lock = threading.RLock()
        self._group_locks: dict[GroupKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------ #
    # Locking
    # ------------------------------------------------------------------ #

    def _group_key(self, station_id: str, connector_type: str) -> GroupKey:
        return (station_id, connector_key(connector_type))

    @contextmanager
    def group_lock(self, station_id: str, connector_type: str) -> Iterator[None]:
        """Serialise state-changing work on one (station, connector type) group."""
        self._ensure_open()
        key = self._group_key(station_id, connector_type)
        with self._registry_lock:
            lock = self._group_locks.setdefault(key, threading.Lock())
        if not lock.acquire(timeout=self._lock_timeout):
            logger.warning(
                "Timed out after %.1fs waiting for connector group %s/%s",
                self._lock_timeout, station_id, connector_type,
            )
            raise RequestTimeoutError(
                "The station is busy processing other requests. Please retry."
            )
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, reservation_id: str) -> Optional[Reservation]:
        self._ensure_open()
        with self._rows_lock:
            return self._rows.get(reservation_id)

    def find(
        self,
        user_id: Optional[str] = None,
        station_id: Optional[str] = None,
        connector_type: Optional[str] = None,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> list[Reservation]:
        """Return rows matching every given filter, in insertion order."""
        self._ensure_open()
        wanted = set(statuses) if statuses is not None else None
        key = connector_key(connector_type) if connector_type is not None else None
        with self._rows_lock:
            rows = list(self._rows.values())
        return [
            row for row in rows
            if (user_id is None or row.user_id == user_id)
            and (station_id is None or row.station_id == station_id)
            and (key is None or connector_key(row.connector_type) == key)
            and (wanted is None or row.status in wanted)
        ]

    def overlapping(
        self,
        station_id: str,
        connector_type: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[ReservationStatus],
    ) -> list[Reservation]:
        """Rows of one connector group whose window overlaps [start, end)."""
        candidates = self.find(
            station_id=station_id, connector_type=connector_type, statuses=statuses
        )
        return [row for row in candidates if row.overlaps(start, end)]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def insert(self, reservation: Reservation) -> Reservation:
        self._ensure_open()
        with self._rows_lock:
            if reservation.reservation_id in self._rows:
                raise ValueError(f"Duplicate reservation id: {reservation.reservation_id}")
            self._rows[reservation.reservation_id] = reservation
        return reservation

    def compare_and_set(
        self, reservation_id: str, expected_version: int, **changes: Any
    ) -> Reservation:
        """
        Replace a row if it is still at ``expected_version``.

        Raises:
            NotFoundError: No row with that id.
            InvalidTransitionError: Another writer updated the row first.
        """
        self._ensure_open()
        with self._rows_lock:
            current = self._rows.get(reservation_id)
            if current is None:
                raise NotFoundError(f"Reservation {reservation_id} not found.")
            if current.version != expected_version:
                raise InvalidTransitionError(
                    f"Reservation {reservation_id} was modified concurrently "
                    f"(now '{current.status.value}').",
                    details={"current_status": current.status.value},
                )
            updated = current.model_copy(update={**changes, "version": expected_version + 1})
            self._rows[reservation_id] = updated
        return updated

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Stop serving; later calls raise UnavailableError."""
        self._closed = True
        logger.info("Reservation store closed")

    def reset(self) -> None:
        """Clear all rows and reopen. Used by test fixtures for isolation."""
        with self._rows_lock:
            self._rows.clear()
        self._closed = False

    def __len__(self) -> int:
        with self._rows_lock:
            return len(self._rows)

    def _ensure_open(self) -> None:
        if self._closed:
            raise UnavailableError("Reservation storage is unavailable. Please retry later.")
