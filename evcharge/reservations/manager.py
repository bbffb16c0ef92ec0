"""
Reservation lifecycle manager.

Owns creation and every status change of a reservation:

    pending -> confirmed -> active -> completed
    pending | confirmed | active -> cancelled

Creation runs the availability check and the insert under the connector
group lock so two racing overlapping requests cannot both succeed. Status
changes re-read the row under the same lock and write it back with a
versioned compare-and-set, so a stale writer is rejected rather than
silently overwriting.
"""

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from evcharge.config import settings
from evcharge.errors import (
    InvalidRequestError,
    InvalidWindowError,
    NotFoundError,
    NotYetStartableError,
    SlotConflictError,
    UnauthorizedError,
    WindowExpiredError,
)
from evcharge.logging_context import get_request_logger
from evcharge.reservations.state_machine import ReservationAction, next_status
from evcharge.schemas.reservation_schema import (
    BLOCKING_STATUSES,
    AvailabilityResult,
    Reservation,
    ReservationAnalytics,
    ReservationStatus,
    SessionMetrics,
    VehicleInfo,
)
from evcharge.tools.availability import AvailabilityChecker, validate_window
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore

logger = get_request_logger(__name__)

Clock = Callable[[], datetime]
ChangeBuilder = Callable[[Reservation, datetime], dict[str, Any]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def estimate_cost(power_kw: float, price_per_kwh: float, start: datetime, end: datetime) -> float:
    """Cost of drawing full rated power for the whole window, rounded to cents."""
    hours = (end - start).total_seconds() / 3600
    return round(power_kw * hours * price_per_kwh, 2)


class ReservationManager:
    """Creates reservations and drives them through their lifecycle."""

    def __init__(
        self,
        catalog: StationCatalog,
        store: ReservationStore,
        checker: Optional[AvailabilityChecker] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._checker = checker or AvailabilityChecker(catalog, store)
        self._clock = clock or _utc_now
        self._config = settings.reservations

    @property
    def catalog(self) -> StationCatalog:
        return self._catalog

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def check_availability(
        self, station_id: str, connector_type: str, start_time: datetime, end_time: datetime
    ) -> AvailabilityResult:
        """Fresh availability for a connector group and window."""
        return self._checker.check(station_id, connector_type, start_time, end_time)

    def get(self, user_id: str, reservation_id: str) -> Reservation:
        return self._load_owned(user_id, reservation_id)

    def list_for_user(
        self,
        user_id: str,
        status: Optional[ReservationStatus] = None,
        limit: Optional[int] = None,
    ) -> list[Reservation]:
        """The caller's reservations, newest start time first."""
        self._require_user(user_id)
        rows = self._store.find(
            user_id=user_id, statuses=[status] if status is not None else None
        )
        rows.sort(key=lambda r: r.start_time, reverse=True)
        return rows[:self._clamp_limit(limit)]

    def list_active(self, user_id: str) -> list[Reservation]:
        """The caller's pending, confirmed, and active reservations, soonest first."""
        self._require_user(user_id)
        rows = self._store.find(user_id=user_id, statuses=BLOCKING_STATUSES)
        rows.sort(key=lambda r: r.start_time)
        return rows

    def station_schedule(
        self,
        station_id: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> list[Reservation]:
        """Non-terminal reservations at a station, optionally limited to a window."""
        self._catalog.get(station_id)
        rows = self._store.find(station_id=station_id, statuses=BLOCKING_STATUSES)
        if start_time is not None or end_time is not None:
            if start_time is None or end_time is None:
                raise InvalidWindowError("Both start and end time are required to filter.")
            validate_window(start_time, end_time)
            rows = [r for r in rows if r.overlaps(start_time, end_time)]
        rows.sort(key=lambda r: r.start_time)
        return rows

    def analytics(self, user_id: str, period_days: Optional[int] = None) -> ReservationAnalytics:
        """Summary of the caller's reservations created in the trailing period."""
        self._require_user(user_id)
        days = self._config.analytics_period_days if period_days is None else period_days
        if days < 1:
            raise InvalidRequestError(f"period must be >= 1 day, got {days}")
        max_days = self._config.analytics_max_period_days
        if days > max_days:
            raise InvalidRequestError(
                f"period must be <= {max_days} days, got {days}",
                details={"max_period_days": max_days},
            )
        since = self._clock() - timedelta(days=days)
        rows = [r for r in self._store.find(user_id=user_id) if r.created_at >= since]

        by_status = {status.value: 0 for status in ReservationStatus}
        energy = 0.0
        cost = 0.0
        completed = 0
        for row in rows:
            by_status[row.status.value] += 1
            if row.status == ReservationStatus.COMPLETED:
                completed += 1
                if row.session is not None:
                    energy += row.session.energy_delivered_kwh or 0.0
                    cost += row.session.actual_cost or 0.0

        return ReservationAnalytics(
            period_days=days,
            total_reservations=len(rows),
            by_status=by_status,
            completed_sessions=completed,
            total_energy_kwh=round(energy, 3),
            total_cost=round(cost, 2),
        )

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create(
        self,
        user_id: str,
        station_id: str,
        connector_type: str,
        start_time: datetime,
        end_time: datetime,
        vehicle_info: Optional[VehicleInfo] = None,
        notes: Optional[str] = None,
    ) -> Reservation:
        """
        Book one connector of ``connector_type`` at a station for ``[start, end)``.

        Raises:
            UnauthorizedError: Empty caller identity.
            InvalidWindowError: Naive, inverted, or past-dated window.
            InvalidRequestError: Note longer than the configured limit.
            NotFoundError: Unknown station or connector type.
            SlotConflictError: Every connector of that type is taken for the window.
        """
        self._require_user(user_id)
        validate_window(start_time, end_time)
        now = self._clock()
        if start_time <= now:
            raise InvalidWindowError(
                "Reservation start time must be in the future.",
                details={"start_time": start_time.isoformat()},
            )
        cleaned_notes = self._clean_notes(notes)
        connector = self._catalog.connector_for(station_id, connector_type)
        canonical = connector.type
        start_utc = start_time.astimezone(timezone.utc)
        end_utc = end_time.astimezone(timezone.utc)

        with self._store.group_lock(station_id, canonical):
            availability = self._checker.check(station_id, canonical, start_utc, end_utc)
            if not availability.available:
                logger.info(
                    "Slot conflict for %s at %s/%s [%s, %s)",
                    user_id, station_id, canonical, start_utc.isoformat(), end_utc.isoformat(),
                )
                raise SlotConflictError(
                    f"No {canonical} connector is free at this station for the selected time.",
                    details={
                        "total_connectors": availability.total_connectors,
                        "occupied_connectors": availability.occupied_connectors,
                    },
                )

            reservation = Reservation(
                reservation_id=f"RSV-{uuid.uuid4().hex[:12].upper()}",
                user_id=user_id,
                station_id=station_id,
                connector_type=canonical,
                start_time=start_utc,
                end_time=end_utc,
                status=ReservationStatus.PENDING,
                vehicle_info=vehicle_info,
                notes=cleaned_notes,
                estimated_cost=estimate_cost(
                    connector.power_kw, connector.price_per_kwh, start_utc, end_utc
                ),
                created_at=now,
                updated_at=now,
            )
            self._store.insert(reservation)

        logger.info(
            "Reservation created: %s for %s at %s/%s [%s, %s)",
            reservation.reservation_id, user_id, station_id, canonical,
            start_utc.isoformat(), end_utc.isoformat(),
        )
        return reservation

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def confirm(self, user_id: str, reservation_id: str) -> Reservation:
        """pending -> confirmed."""
        return self._transition(user_id, reservation_id, ReservationAction.CONFIRM)

    def start(self, user_id: str, reservation_id: str) -> Reservation:
        """confirmed -> active, only while now is inside [start, end)."""

        def _changes(current: Reservation, now: datetime) -> dict[str, Any]:
            if now < current.start_time:
                raise NotYetStartableError(
                    "This reservation cannot be started before its start time.",
                    details={"start_time": current.start_time.isoformat()},
                )
            if now >= current.end_time:
                raise WindowExpiredError(
                    "This reservation's time window has ended.",
                    details={"end_time": current.end_time.isoformat()},
                )
            return {"started_at": now}

        return self._transition(user_id, reservation_id, ReservationAction.START, _changes)

    def complete(
        self, user_id: str, reservation_id: str, session: Optional[SessionMetrics] = None
    ) -> Reservation:
        """active -> completed, attaching final session metrics."""

        def _changes(current: Reservation, now: datetime) -> dict[str, Any]:
            metrics = session or SessionMetrics()
            updates: dict[str, Any] = {}
            if metrics.actual_cost is None and metrics.energy_delivered_kwh is not None:
                connector = self._catalog.connector_for(current.station_id, current.connector_type)
                updates["actual_cost"] = round(
                    metrics.energy_delivered_kwh * connector.price_per_kwh, 2
                )
            if metrics.duration_minutes is None and current.started_at is not None:
                updates["duration_minutes"] = round(
                    (now - current.started_at).total_seconds() / 60, 1
                )
            if updates:
                metrics = metrics.model_copy(update=updates)
            return {"completed_at": now, "session": metrics}

        return self._transition(user_id, reservation_id, ReservationAction.COMPLETE, _changes)

    def cancel(self, user_id: str, reservation_id: str) -> Reservation:
        """Any non-terminal status -> cancelled. Cancelling twice is an error."""

        def _changes(current: Reservation, now: datetime) -> dict[str, Any]:
            return {"cancelled_at": now}

        return self._transition(user_id, reservation_id, ReservationAction.CANCEL, _changes)

    def _transition(
        self,
        user_id: str,
        reservation_id: str,
        action: ReservationAction,
        build_changes: Optional[ChangeBuilder] = None,
    ) -> Reservation:
        current = self._load_owned(user_id, reservation_id)
        with self._store.group_lock(current.station_id, current.connector_type):
            current = self._load_owned(user_id, reservation_id)
            new_status = next_status(current.status, action)
            now = self._clock()
            changes = build_changes(current, now) if build_changes else {}
            updated = self._store.compare_and_set(
                reservation_id,
                current.version,
                status=new_status,
                updated_at=now,
                **changes,
            )

        log = logger.info if action == ReservationAction.CANCEL else logger.debug
        log(
            "Reservation %s: %s -> %s",
            reservation_id, current.status.value, updated.status.value,
        )
        return updated

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require_user(self, user_id: Optional[str]) -> None:
        if not user_id or not user_id.strip():
            raise UnauthorizedError("Authentication required.")

    def _load_owned(self, user_id: str, reservation_id: str) -> Reservation:
        self._require_user(user_id)
        reservation = self._store.get(reservation_id)
        # Other users' reservations are reported as missing
        if reservation is None or reservation.user_id != user_id:
            raise NotFoundError(f"Reservation {reservation_id} not found.")
        return reservation

    def _clean_notes(self, notes: Optional[str]) -> Optional[str]:
        if notes is None:
            return None
        cleaned = notes.strip()
        if not cleaned:
            return None
        if len(cleaned) > self._config.max_note_length:
            raise InvalidRequestError(
                f"Notes must be at most {self._config.max_note_length} characters.",
                details={"length": len(cleaned)},
            )
        return cleaned

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self._config.list_default_limit
        if limit < 1:
            raise InvalidRequestError(f"limit must be >= 1, got {limit}")
        return min(limit, self._config.list_max_limit)
