"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from evcharge.reservations.manager import ReservationManager
from evcharge.schemas.reservation_schema import Reservation, ReservationStatus
from evcharge.schemas.station_schema import Connector, Coordinate, Station
from evcharge.tools.availability import AvailabilityChecker
from evcharge.tools.locator import StationLocator
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore

NOW = datetime(2025, 3, 18, 9, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 18) -> datetime:
    """An instant on the test day, in UTC."""
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock passed to the manager."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.now = value


def make_station(
    station_id: str = "S",
    connectors: Optional[list[tuple[str, int]]] = None,
    latitude: float = 49.2781,
    longitude: float = -122.7912,
    name: Optional[str] = None,
) -> Station:
    """Build a station from (type, count) pairs; 50 kW at $0.40/kWh each."""
    groups = connectors if connectors is not None else [("CCS", 1), ("Level 2", 2)]
    built = []
    for connector_type, count in groups:
        for _ in range(count):
            built.append(Connector(
                connector_id=f"{station_id}-{len(built) + 1}",
                type=connector_type,
                power_kw=50.0,
                price_per_kwh=0.40,
            ))
    return Station(
        station_id=station_id,
        name=name or f"Station {station_id}",
        address="1 Test Way",
        coordinate=Coordinate(latitude=latitude, longitude=longitude),
        connectors=built,
    )


def make_reservation(
    reservation_id: str,
    start: datetime,
    end: datetime,
    status: ReservationStatus = ReservationStatus.CONFIRMED,
    station_id: str = "S",
    connector_type: str = "CCS",
    user_id: str = "someone",
) -> Reservation:
    """Build a reservation row for direct insertion into a store."""
    return Reservation(
        reservation_id=reservation_id,
        user_id=user_id,
        station_id=station_id,
        connector_type=connector_type,
        start_time=start,
        end_time=end,
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return StationCatalog([make_station()])


@pytest.fixture
def seed_catalog():
    return StationCatalog()


@pytest.fixture
def store():
    return ReservationStore(lock_timeout_sec=2.0)


@pytest.fixture
def checker(catalog, store):
    return AvailabilityChecker(catalog, store)


@pytest.fixture
def manager(catalog, store, clock):
    return ReservationManager(catalog, store, clock=clock)


@pytest.fixture
def locator():
    return StationLocator()
