"""Station, connector, and distance-ranking data models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from evcharge.utils import connector_key


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(WireModel):
    """Geographic point in degrees."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Connector(WireModel):
    """A single physical charging point at a station."""
    model_config = ConfigDict(frozen=True)

    connector_id: str
    type: str = Field(min_length=1)
    power_kw: float = Field(gt=0)
    price_per_kwh: float = Field(ge=0)


class Station(WireModel):
    """Charging station with its ordered connector list."""
    model_config = ConfigDict(frozen=True)

    station_id: str
    name: str
    address: str
    coordinate: Coordinate
    connectors: list[Connector] = Field(default_factory=list)

    def connectors_of_type(self, connector_type: str) -> list[Connector]:
        key = connector_key(connector_type)
        return [c for c in self.connectors if connector_key(c.type) == key]

    def connector_types(self) -> list[str]:
        """Distinct connector types in catalog order."""
        seen: dict[str, str] = {}
        for connector in self.connectors:
            seen.setdefault(connector_key(connector.type), connector.type)
        return list(seen.values())


class FormattedDistance(WireModel):
    """Distance as shown to the user, e.g. ``5016 ft`` or ``3.2 mi``."""
    model_config = ConfigDict(frozen=True)

    value: str
    unit: Literal["ft", "mi"]

    @property
    def text(self) -> str:
        return f"{self.value} {self.unit}"

    def __str__(self) -> str:
        return self.text


class StationWithDistance(WireModel):
    """A station annotated with its distance from the search origin."""
    model_config = ConfigDict(frozen=True)

    station: Station
    distance_km: float
    distance: FormattedDistance
