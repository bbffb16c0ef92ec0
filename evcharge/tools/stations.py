"""
Station catalog.

Read-mostly registry of charging stations. The default seed mirrors the
sample stations the mobile client ships with; a JSON file named by
``STATION_CATALOG_PATH`` replaces it in deployments.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import TypeAdapter

from evcharge.config import settings
from evcharge.errors import NotFoundError
from evcharge.schemas.station_schema import Connector, Coordinate, Station
from evcharge.tools.locator import haversine_km

logger = logging.getLogger(__name__)

_STATION_LIST = TypeAdapter(list[Station])

# station_id -> (name, address, (lat, lng), [(type, count, power_kw, price_per_kwh)])
SEED_STATIONS: dict[str, tuple] = {
    "1": ("Coquitlam Centre ChargePoint", "2929 Barnet Hwy, Coquitlam, BC",
          (49.2781, -122.7912), [("CCS", 3, 150.0, 0.35), ("CHAdeMO", 1, 50.0, 0.35)]),
    "2": ("Burnaby Heights EV Station", "4567 Hastings St, Burnaby, BC",
          (49.2827, -123.0186), [("Level 2", 6, 22.0, 0.25)]),
    "3": ("Metrotown Power Hub", "4800 Kingsway, Burnaby, BC",
          (49.2262, -123.0038), [("CCS", 2, 100.0, 0.40), ("CHAdeMO", 1, 50.0, 0.40)]),
    "4": ("Coquitlam River Park Charging", "1200 Pinetree Way, Coquitlam, BC",
          (49.2488, -122.7931), [("Level 2", 4, 11.0, 0.22)]),
    "5": ("Square One EV Hub", "100 City Centre Dr, Mississauga, ON",
          (43.5933, -79.6441), [("CCS", 6, 200.0, 0.38), ("CHAdeMO", 2, 50.0, 0.38)]),
    "6": ("Mississauga Transit ChargePoint", "3359 Mississauga Rd, Mississauga, ON",
          (43.5890, -79.6441), [("Level 2", 10, 22.0, 0.28)]),
    "7": ("Erin Mills Town Centre Charging", "5100 Erin Mills Pkwy, Mississauga, ON",
          (43.5563, -79.7402), [("CCS", 4, 150.0, 0.42)]),
    "8": ("Port Credit GO Station EV", "2 Elm St, Mississauga, ON",
          (43.5563, -79.5890), [("Level 2", 12, 11.0, 0.24)]),
}


def _build_seed() -> list[Station]:
    stations = []
    for station_id, (name, address, (lat, lng), groups) in SEED_STATIONS.items():
        connectors = []
        for connector_type, count, power_kw, price in groups:
            for _ in range(count):
                connectors.append(Connector(
                    connector_id=f"{station_id}-{len(connectors) + 1}",
                    type=connector_type,
                    power_kw=power_kw,
                    price_per_kwh=price,
                ))
        stations.append(Station(
            station_id=station_id,
            name=name,
            address=address,
            coordinate=Coordinate(latitude=lat, longitude=lng),
            connectors=connectors,
        ))
    return stations


def load_stations(path: str) -> list[Station]:
    """Load a station list from a JSON file of station objects."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    stations = _STATION_LIST.validate_python(raw)
    logger.info("Loaded %d stations from %s", len(stations), path)
    return stations


class StationCatalog:
    """Registry of stations keyed by id, preserving catalog order."""

    def __init__(self, stations: Optional[Iterable[Station]] = None) -> None:
        if stations is None:
            if settings.catalog.catalog_path:
                stations = load_stations(settings.catalog.catalog_path)
            else:
                stations = _build_seed()
        self._stations: dict[str, Station] = {}
        for station in stations:
            if station.station_id in self._stations:
                raise ValueError(f"Duplicate station id: {station.station_id}")
            self._stations[station.station_id] = station

    def __len__(self) -> int:
        return len(self._stations)

    def list_stations(self) -> list[Station]:
        return list(self._stations.values())

    def get(self, station_id: str) -> Station:
        station = self._stations.get(station_id)
        if station is None:
            raise NotFoundError(f"Station {station_id} not found.")
        return station

    def nearby(
        self,
        origin: Coordinate,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[Station]:
        """Stations within ``radius_km`` of origin, in catalog order (unranked)."""
        radius = settings.catalog.nearby_radius_km if radius_km is None else radius_km
        max_results = settings.catalog.nearby_limit if limit is None else limit
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")
        if max_results < 1:
            return []
        found = [
            station for station in self._stations.values()
            if haversine_km(origin, station.coordinate) <= radius
        ]
        return found[:max_results]

    def connector_count(self, station_id: str, connector_type: str) -> int:
        """Number of physical connectors of a type at a station."""
        return len(self.get(station_id).connectors_of_type(connector_type))

    def connector_for(self, station_id: str, connector_type: str) -> Connector:
        """First connector of a type; raises NotFoundError if the station has none."""
        station = self.get(station_id)
        matches = station.connectors_of_type(connector_type)
        if not matches:
            raise NotFoundError(
                f"Station {station_id} has no {connector_type} connectors.",
                details={"available_types": station.connector_types()},
            )
        return matches[0]

    def resolve_connector_type(self, station_id: str, connector_type: str) -> str:
        """Canonical catalog spelling of a connector type at a station."""
        return self.connector_for(station_id, connector_type).type
