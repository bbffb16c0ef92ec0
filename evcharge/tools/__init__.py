from evcharge.tools.availability import AvailabilityChecker
from evcharge.tools.locator import StationLocator, format_distance, haversine_km
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore

__all__ = [
    "AvailabilityChecker",
    "StationLocator",
    "format_distance",
    "haversine_km",
    "StationCatalog",
    "ReservationStore",
]
