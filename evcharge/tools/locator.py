"""
Nearest-station ranking.

Great-circle distances use the haversine formula on a spherical Earth.
Display formatting converts to miles and drops to feet under one mile,
reproducing the values the mobile client shows.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from evcharge.schemas.station_schema import (
    Coordinate,
    FormattedDistance,
    Station,
    StationWithDistance,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371
FEET_PER_MILE = 5280


def haversine_km(origin: Coordinate, target: Coordinate) -> float:
    """Great-circle distance in kilometers between two coordinates in degrees."""
    d_lat = math.radians(target.latitude - origin.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.latitude))
        * math.cos(math.radians(target.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _fixed(value: float, places: int) -> str:
    # Half-up on the exact binary value, like JavaScript's toFixed
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_distance(distance_km: float) -> FormattedDistance:
    """Render a distance in feet below one mile, else miles to one decimal.

    Examples:
        >>> format_distance(0.95 / 0.621371).text
        '5016 ft'
        >>> format_distance(3.2 / 0.621371).text
        '3.2 mi'
    """
    miles = distance_km * KM_TO_MILES
    if miles < 1:
        return FormattedDistance(value=_fixed(miles * FEET_PER_MILE, 0), unit="ft")
    return FormattedDistance(value=_fixed(miles, 1), unit="mi")


class StationLocator:
    """
    Ranks stations by distance from an origin.

    Holds no state; ``rank`` may be called concurrently and results are
    never cached here.
    """

    def distance_to(self, origin: Coordinate, station: Station) -> StationWithDistance:
        km = haversine_km(origin, station.coordinate)
        return StationWithDistance(station=station, distance_km=km, distance=format_distance(km))

    def rank(self, origin: Coordinate, stations: Iterable[Station]) -> list[StationWithDistance]:
        """Return stations sorted ascending by distance; ties keep catalog order."""
        annotated = [self.distance_to(origin, station) for station in stations]
        ranked = sorted(annotated, key=lambda item: item.distance_km)
        logger.debug(
            "Ranked %d stations from (%.4f, %.4f)",
            len(ranked), origin.latitude, origin.longitude,
        )
        return ranked
