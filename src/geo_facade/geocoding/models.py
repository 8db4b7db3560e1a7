"""
Core data models for normalization, geocoding and routing results.

These immutable, frozen dataclasses serve as the contract between
the normalizer, the gateway and the facade operations.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, List
from enum import StrEnum


class CountryCode(StrEnum):
    """Supported jurisdictions, each bound to one postal code format."""
    US = "US"
    CA = "CA"
    ZA = "ZA"


class CanonicalKind(StrEnum):
    """Which canonical form a location was reduced to."""
    COORDINATES = "coordinates"
    ADDRESS = "address"


@dataclass(frozen=True)
class CanonicalLocation:
    """
    Output of the location normalizer.

    `value` is either a "lat,lng" string or a formatted address string;
    `country` is None when it could not be (or need not be) inferred,
    which is always the case for coordinates.
    """
    value: str
    kind: CanonicalKind
    country: Optional[CountryCode] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    def is_coordinates(self) -> bool:
        return self.kind is CanonicalKind.COORDINATES

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GeocodeResult:
    """First geocoding candidate for a location."""
    lat: float
    lng: float
    formatted_address: str = ""
    place_id: Optional[str] = None
    location_type: Optional[str] = None
    query: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "formatted_address": self.formatted_address,
            "place_id": self.place_id,
            "location_type": self.location_type,
        }


@dataclass(frozen=True)
class AddressComponent:
    long_name: str
    short_name: str
    types: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReverseGeocodeResult:
    formatted_address: str
    components: List[AddressComponent] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    place_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    def component(self, type_name: str) -> Optional[AddressComponent]:
        """Return the first address component tagged with `type_name`."""
        for c in self.components:
            if type_name in c.types:
                return c
        return None


@dataclass(frozen=True)
class RouteStop:
    """A stop along a route, identified by the caller's key."""
    key: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None
    sequence: int = 0
    address: str = ""


@dataclass(frozen=True)
class RouteLeg:
    """
    One leg of a route.

    distance is in meters, travel_time in seconds.
    """
    start: RouteStop
    end: RouteStop
    distance: int
    travel_time: int


@dataclass(frozen=True)
class Route:
    """
    First route returned by the routing provider.

    `stops` lists origin, waypoints (in travelled order) and destination,
    each with its `sequence` along the route.
    """
    legs: List[RouteLeg]
    stops: List[RouteStop]
    travel_time: int
    distance: int
    start_time: Optional[int] = None
    waypoint_order: List[int] = field(default_factory=list)
    summary: str = ""


@dataclass(frozen=True)
class MatrixEntry:
    """
    One origin/destination cell of a distance matrix.

    `start`/`end` are the caller's keys; `origin_index`/`destination_index`
    are the positions in the request and identify the cell even when keys
    collide.
    """
    start: str
    end: str
    travel_time: int
    distance: int
    origin_index: int = 0
    destination_index: int = 0
