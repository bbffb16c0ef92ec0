"""
Offline console demo: exercises the reservation engine without a server.

Uses the real catalog, locator, store, and reservation manager. No HTTP,
no identity provider. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario nearby
    python console_demo.py --scenario race
"""

import argparse
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from evcharge.config import settings
from evcharge.errors import ReservationError
from evcharge.reservations.manager import ReservationManager
from evcharge.schemas.station_schema import Coordinate
from evcharge.tools.locator import StationLocator
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

# Coquitlam, next to the first seed station
DEFAULT_ORIGIN = Coordinate(latitude=49.2781, longitude=-122.7912)


class ConsoleSession:
    """Runs scripted reservation scenarios against an in-process engine."""

    def __init__(self) -> None:
        self.catalog = StationCatalog()
        self.store = ReservationStore()
        self.manager = ReservationManager(self.catalog, self.store)
        self.locator = StationLocator()

    def ok(self, text: str) -> None:
        print(f"{GREEN}  ok  {RESET}{text}")

    def fail(self, text: str) -> None:
        print(f"{RED}  err {RESET}{text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.service_name.upper()} - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _tomorrow_at(self, hour: int, minute: int = 0) -> datetime:
        day = datetime.now(timezone.utc) + timedelta(days=1)
        return day.replace(hour=hour, minute=minute, second=0, microsecond=0)

    def run_nearby(self) -> None:
        self._banner("Nearby stations")
        stations = self.catalog.nearby(DEFAULT_ORIGIN, radius_km=50, limit=10)
        for item in self.locator.rank(DEFAULT_ORIGIN, stations):
            types = ", ".join(item.station.connector_types())
            print(f"  {item.distance.text:>9}  {item.station.name} {DIM}({types}){RESET}")

    def run_booking(self) -> None:
        self._banner("Booking lifecycle")
        station = self.catalog.get("3")
        self.system_log(f"Station: {station.name}, CHAdeMO connectors: "
                        f"{self.catalog.connector_count(station.station_id, 'CHAdeMO')}")

        first = self.manager.create(
            "alice", station.station_id, "CHAdeMO",
            self._tomorrow_at(14), self._tomorrow_at(15),
        )
        self.ok(f"alice booked {first.reservation_id} 14:00-15:00 ({first.status.value}, "
                f"est. ${first.estimated_cost:.2f})")

        try:
            self.manager.create(
                "bob", station.station_id, "CHAdeMO",
                self._tomorrow_at(14, 30), self._tomorrow_at(15, 30),
            )
        except ReservationError as exc:
            self.fail(f"bob 14:30-15:30 -> {exc.code}: {exc.message}")

        cancelled = self.manager.cancel("alice", first.reservation_id)
        self.ok(f"alice cancelled {cancelled.reservation_id} ({cancelled.status.value})")

        try:
            self.manager.cancel("alice", first.reservation_id)
        except ReservationError as exc:
            self.fail(f"alice cancels again -> {exc.code}")

        second = self.manager.create(
            "bob", station.station_id, "CHAdeMO",
            self._tomorrow_at(14, 30), self._tomorrow_at(15, 30),
        )
        self.ok(f"bob retried and booked {second.reservation_id} ({second.status.value})")
        confirmed = self.manager.confirm("bob", second.reservation_id)
        self.ok(f"bob confirmed ({confirmed.status.value})")

    def run_race(self, attempts: int = 8) -> None:
        self._banner("Concurrent booking race")
        station_id = "7"
        total = self.catalog.connector_count(station_id, "CCS")
        self.system_log(f"{attempts} users race for {total} CCS connectors")

        def attempt(index: int) -> str:
            try:
                self.manager.create(
                    f"user-{index}", station_id, "CCS",
                    self._tomorrow_at(9), self._tomorrow_at(10),
                )
                return "booked"
            except ReservationError as exc:
                return exc.code

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            outcomes = list(pool.map(attempt, range(attempts)))
        for index, outcome in enumerate(outcomes):
            (self.ok if outcome == "booked" else self.fail)(f"user-{index}: {outcome}")
        print(f"{BLUE}  booked {outcomes.count('booked')} of {total} connectors{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline reservation engine demo")
    parser.add_argument(
        "--scenario",
        choices=["booking", "nearby", "race", "all"],
        default="all",
        help="Which scripted scenario to run",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario in ("nearby", "all"):
        session.run_nearby()
    if args.scenario in ("booking", "all"):
        session.run_booking()
    if args.scenario in ("race", "all"):
        session.run_race()


if __name__ == "__main__":
    main()
