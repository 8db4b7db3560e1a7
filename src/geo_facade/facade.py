"""
Geolocation facade.

Each operation normalizes its location arguments, sends one throttled
request through the gateway and extracts the requested shape from the
provider response.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence, Union

from tqdm import tqdm

from .geocoding.base import GeocodingProvider, Normalizer, PlaceLookup
from .geocoding.classifier import classify, resolve_country
from .geocoding.gateway import RateLimitedGateway, ResponseShape
from .geocoding.geometry import point_in_polygon
from .geocoding.locations import location_key
from .geocoding.models import (
    AddressComponent,
    CountryCode,
    GeocodeResult,
    MatrixEntry,
    ReverseGeocodeResult,
    Route,
    RouteLeg,
    RouteStop,
)
from .geocoding.normalizers import LocationNormalizer
from .geocoding.providers import GoogleMapsClient, ZippopotamClient
from .geocoding.throttling import shared_bucket
from .settings import Settings, get_settings
from .utils.errors import (
    ConfigurationError,
    InvalidInputError,
    ProviderError,
    ProviderRejectedError,
)

logger = logging.getLogger(__name__)

GEOCODE = ResponseShape("geocode")
# ZERO_RESULTS is a valid answer for reverse geocoding only
REVERSE_GEOCODE = ResponseShape("reverse_geocode", allow_empty=True)
DIRECTIONS = ResponseShape("directions", results_key="routes")
DISTANCE_MATRIX = ResponseShape("distance_matrix", results_key="rows")
PLACES = ResponseShape("places", status_key=None, results_key="places", allow_empty=True)

DepartureTime = Union[datetime, int, float, str, None]


def _epoch(departure_time: DepartureTime) -> Optional[Union[int, str]]:
    """Departure time as unix seconds ("now" passes through)."""
    if departure_time is None:
        return None
    if isinstance(departure_time, datetime):
        return int(departure_time.timestamp())
    if isinstance(departure_time, str):
        if departure_time == "now":
            return departure_time
        raise InvalidInputError("departure_time must be a datetime, unix seconds or 'now'")
    if isinstance(departure_time, bool):
        raise InvalidInputError("departure_time must be a datetime, unix seconds or 'now'")
    return int(departure_time)


def _latlng(point: Optional[dict[str, Any]]) -> tuple[Optional[float], Optional[float]]:
    if not point:
        return None, None
    return point.get("lat"), point.get("lng")


def _value(field: Any) -> Optional[int]:
    """Numeric `value` of a duration/distance field, None when absent."""
    if not isinstance(field, dict):
        return None
    value = field.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _duration(element: dict[str, Any]) -> Optional[int]:
    traffic = _value(element.get("duration_in_traffic"))
    return traffic if traffic is not None else _value(element.get("duration"))


def select_closest(entries: Iterable[MatrixEntry]) -> Optional[MatrixEntry]:
    """Entry with the shortest travel time; the first-seen entry wins ties."""
    best: Optional[MatrixEntry] = None
    for entry in entries:
        if best is not None and entry.travel_time >= best.travel_time:
            continue
        best = entry
    return best


def select_farthest(entries: Iterable[MatrixEntry]) -> Optional[MatrixEntry]:
    """Entry with the longest travel time; a later entry wins ties."""
    best: Optional[MatrixEntry] = None
    for entry in entries:
        if best is not None and entry.travel_time < best.travel_time:
            continue
        best = entry
    return best


class GeoFacade:
    """
    Geocoding, routing and geometry operations over raw location values.

    Locations may be coordinate records, address records, order/facility
    records wrapping either, or address strings (see geocoding.locations).
    Every provider call goes through one RateLimitedGateway.
    """

    def __init__(
        self,
        provider: GeocodingProvider,
        gateway: RateLimitedGateway,
        places: Optional[PlaceLookup] = None,
        normalizer: Optional[Normalizer] = None,
    ):
        self.provider = provider
        self.gateway = gateway
        self.places = places
        self.normalizer = normalizer or LocationNormalizer()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GeoFacade":
        """
        Build a facade on the process-wide token bucket.

        Raises:
            ConfigurationError: no provider API key configured
        """
        settings = settings or get_settings()
        if not settings.api_key:
            raise ConfigurationError("Missing config or API key (set GEO_API_KEY)")

        bucket = shared_bucket(settings.bucket_capacity, settings.bucket_refill_interval_s)
        gateway = RateLimitedGateway(
            bucket,
            max_attempts=settings.max_attempts,
            retry_delay_s=settings.retry_delay_s,
        )
        provider = GoogleMapsClient(
            api_key=settings.api_key,
            api_base_url=settings.api_base_url,
            timeout=settings.timeout_s,
            language=settings.language,
        )
        places = ZippopotamClient(settings.places_base_url, timeout=settings.timeout_s)
        return cls(provider, gateway, places=places)

    # Geocoding ------------------------------------------------------------

    def geocode(self, location: Any) -> GeocodeResult:
        """
        Geocode a location to coordinates.

        Coordinate inputs are already resolved and are returned without
        a provider call.

        Raises:
            InvalidInputError: location cannot be normalized
            ProviderError: provider failure or no candidate with a geometry
        """
        canonical = self.normalizer.normalize(location)
        if canonical.is_coordinates():
            return GeocodeResult(lat=canonical.lat, lng=canonical.lng, query=canonical.value)

        params: dict[str, Any] = {}
        if canonical.country is not None:
            params["region"] = canonical.country.value.lower()
            params["components"] = f"country:{canonical.country.value}"

        response = self.gateway.call(
            self.provider.geocode, canonical.value, shape=GEOCODE, **params
        )
        first = response["results"][0]
        point = (first.get("geometry") or {}).get("location")
        lat, lng = _latlng(point)
        if lat is None or lng is None:
            raise ProviderRejectedError(
                "geocode result has no geometry", details={"query": canonical.value}
            )
        return GeocodeResult(
            lat=float(lat),
            lng=float(lng),
            formatted_address=first.get("formatted_address", ""),
            place_id=first.get("place_id"),
            location_type=(first.get("geometry") or {}).get("location_type"),
            query=canonical.value,
        )

    def geocode_batch(
        self,
        locations: Sequence[Any],
        n_workers: int = 4,
        progress: bool = False,
    ) -> dict[str, Union[GeocodeResult, ProviderError]]:
        """
        Geocode several locations concurrently.

        Results are keyed by each location's `key`/`id` (position when
        absent). Failed locations map to their ProviderError.

        Raises:
            InvalidInputError: two locations resolve to the same key
        """
        keys = self._keys(locations)
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise InvalidInputError(
                f"location keys must be unique, duplicated: {', '.join(duplicates)}",
                details={"duplicates": duplicates},
            )
        results: dict[str, Union[GeocodeResult, ProviderError]] = {}

        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = {
                executor.submit(self.geocode, location): key
                for key, location in zip(keys, locations)
            }
            with tqdm(total=len(futures), desc="Geocoding", unit="loc", disable=not progress) as pbar:
                for future in as_completed(futures):
                    key = futures[future]
                    try:
                        results[key] = future.result()
                    except ProviderError as e:
                        logger.error(f"Failed to geocode location key={key}: {e}")
                        results[key] = e
                    pbar.update(1)

        return results

    def reverse_geocode(
        self,
        location: Any,
        result_type: Optional[Sequence[str]] = None,
        location_type: Optional[Sequence[str]] = None,
        language: Optional[str] = None,
    ) -> list[ReverseGeocodeResult]:
        """
        Reverse geocode a coordinate location to addresses.

        An explicit "no results" answer is returned as an empty list.
        """
        canonical = self.normalizer.normalize(location)
        if not canonical.is_coordinates():
            raise InvalidInputError("reverse geocoding requires a coordinate location")

        response = self.gateway.call(
            self.provider.reverse_geocode,
            canonical.value,
            shape=REVERSE_GEOCODE,
            result_type="|".join(result_type) if result_type else None,
            location_type="|".join(location_type) if location_type else None,
            language=language,
        )

        results = []
        for r in response.get("results") or []:
            lat, lng = _latlng((r.get("geometry") or {}).get("location"))
            results.append(ReverseGeocodeResult(
                formatted_address=r.get("formatted_address", ""),
                components=[
                    AddressComponent(
                        long_name=c.get("long_name", ""),
                        short_name=c.get("short_name", ""),
                        types=list(c.get("types", [])),
                    )
                    for c in r.get("address_components", [])
                ],
                types=list(r.get("types", [])),
                place_id=r.get("place_id"),
                lat=lat,
                lng=lng,
            ))
        return results

    def city_for_zip(self, postal_code: str, country: Optional[str] = None) -> str:
        """
        Name of the first place registered for a postal code.

        Args:
            postal_code: Postal code to look up
            country: Country of the code; classified from the code when omitted
        """
        if not postal_code or not str(postal_code).strip():
            raise InvalidInputError("postal code is required")
        if self.places is None:
            raise ConfigurationError("No postal code lookup configured")

        code = str(postal_code).strip()
        resolved = resolve_country(country) if country else classify(code)
        if resolved is None:
            raise InvalidInputError("country not supported", details={"zip": code})

        if resolved is CountryCode.CA:
            # Only the forward sortation area (first 3 characters) is indexed
            code = code.replace(" ", "").replace("-", "")[:3].upper()

        body = self.gateway.call(self.places.lookup, resolved.value, code, shape=PLACES)
        places = body.get("places") or []
        if not places:
            raise InvalidInputError(
                "Could not get valid city for address", details={"zip": code}
            )
        try:
            return places[0]["place name"]
        except (KeyError, TypeError) as e:
            raise ProviderRejectedError("place lookup returned a place without a name") from e

    # Routing --------------------------------------------------------------

    def directions(
        self,
        origin: Any,
        destination: Any,
        waypoints: Optional[Sequence[Any]] = None,
        departure_time: DepartureTime = None,
        manual_route: bool = False,
    ) -> Route:
        """
        Route from origin to destination through waypoints.

        Waypoints are visited in the optimized order unless `manual_route`
        is set. Stops keep the caller's `key`/`id`.

        Args:
            origin: Start location
            destination: End location
            waypoints: Intermediate locations
            departure_time: datetime, unix seconds or "now"
            manual_route: Keep the waypoints in the given order
        """
        if origin is None or destination is None:
            raise InvalidInputError("origin and destination are required")
        waypoints = list(waypoints or [])
        keys = [
            location_key(origin, "origin"),
            *[location_key(w, f"waypoint-{i}") for i, w in enumerate(waypoints)],
            location_key(destination, "destination"),
        ]
        return self._route([origin, *waypoints, destination], keys, departure_time, optimize=not manual_route)

    # The original name of the operation
    optimize = directions

    def travel_time(
        self,
        route_stops: Sequence[Any],
        departure_time: DepartureTime = None,
        manual_route: bool = True,
    ) -> Route:
        """
        Expected travel times along a sequence of stops.

        The first stop is the origin, the last the destination. Each leg's
        start and end carry the stop's `key`/`id` (position when absent).
        """
        if not route_stops or len(route_stops) < 2:
            raise InvalidInputError("at least two route stops are required")
        if any(stop is None for stop in route_stops):
            raise InvalidInputError("route stops must not be empty")
        return self._route(list(route_stops), self._keys(route_stops), departure_time, optimize=not manual_route)

    calculate = travel_time

    def _route(
        self,
        stops: list[Any],
        keys: list[Optional[str]],
        departure_time: DepartureTime,
        optimize: bool,
    ) -> Route:
        canonical = self.normalizer.normalize_batch(stops)
        origin, *waypoints, destination = canonical
        departure = _epoch(departure_time)

        response = self.gateway.call(
            self.provider.directions,
            origin.value,
            destination.value,
            waypoints=[w.value for w in waypoints],
            optimize=optimize and bool(waypoints),
            departure_time=departure,
            shape=DIRECTIONS,
        )

        route = response["routes"][0]
        legs = route.get("legs") or []
        if not legs:
            raise ProviderRejectedError("directions route has no legs")

        order = route.get("waypoint_order") or list(range(len(waypoints)))
        waypoint_keys = keys[1:-1]
        try:
            ordered_keys = [keys[0], *[waypoint_keys[i] for i in order], keys[-1]]
        except (IndexError, TypeError) as e:
            raise ProviderRejectedError("directions waypoint order does not match the request") from e
        if len(ordered_keys) != len(legs) + 1:
            raise ProviderRejectedError(
                f"directions returned {len(legs)} legs for {len(ordered_keys)} stops"
            )

        route_stops = []
        for sequence, key in enumerate(ordered_keys):
            if sequence < len(legs):
                point, address = legs[sequence].get("start_location"), legs[sequence].get("start_address", "")
            else:
                point, address = legs[-1].get("end_location"), legs[-1].get("end_address", "")
            lat, lng = _latlng(point)
            route_stops.append(RouteStop(key=key, lat=lat, lng=lng, sequence=sequence, address=address))

        route_legs = []
        for i, leg in enumerate(legs):
            distance, travel_time = _value(leg.get("distance")), _duration(leg)
            if distance is None or travel_time is None:
                raise ProviderRejectedError(
                    f"directions leg {i} has no distance or duration",
                    details={"leg": i},
                )
            route_legs.append(RouteLeg(
                start=route_stops[i],
                end=route_stops[i + 1],
                distance=distance,
                travel_time=travel_time,
            ))

        return Route(
            legs=route_legs,
            stops=route_stops,
            travel_time=sum(leg.travel_time for leg in route_legs),
            distance=sum(leg.distance for leg in route_legs),
            start_time=departure if isinstance(departure, int) else None,
            waypoint_order=list(order),
            summary=route.get("summary", ""),
        )

    def distance_matrix(
        self,
        origins: Sequence[Any],
        destinations: Sequence[Any],
        departure_time: DepartureTime = None,
    ) -> list[MatrixEntry]:
        """
        Travel time and distance for every origin/destination pair.

        Entries are keyed by each location's `key`/`id` (position when
        absent) and carry both positions. Cells the provider could not
        route, or answered without a duration or distance, are left out.
        """
        if not origins or not destinations:
            raise InvalidInputError("origins and destinations must not be empty")

        origin_keys = self._keys(origins)
        destination_keys = self._keys(destinations)
        origin_values = [c.value for c in self.normalizer.normalize_batch(list(origins))]
        destination_values = [c.value for c in self.normalizer.normalize_batch(list(destinations))]

        response = self.gateway.call(
            self.provider.distance_matrix,
            origin_values,
            destination_values,
            departure_time=_epoch(departure_time),
            shape=DISTANCE_MATRIX,
        )

        entries = []
        for i, (start, row) in enumerate(zip(origin_keys, response["rows"])):
            for j, (end, element) in enumerate(zip(destination_keys, row.get("elements", []))):
                if element.get("status") != "OK":
                    logger.debug(f"No route {start} -> {end}: {element.get('status')}")
                    continue
                travel_time, distance = _duration(element), _value(element.get("distance"))
                if travel_time is None or distance is None:
                    logger.warning(f"Matrix cell {start} -> {end} has no duration or distance")
                    continue
                entries.append(MatrixEntry(
                    start=start,
                    end=end,
                    travel_time=travel_time,
                    distance=distance,
                    origin_index=i,
                    destination_index=j,
                ))

        if not entries:
            raise ProviderRejectedError("distance matrix has no routable elements")
        return entries

    def find_closest_to_origin(
        self,
        origin: Any,
        destinations: Sequence[Any],
        departure_time: DepartureTime = None,
    ) -> Any:
        """Destination with the shortest travel time from origin (the caller's object)."""
        return self._extremum(origin, destinations, departure_time, select_closest)

    def find_farthest_from_origin(
        self,
        origin: Any,
        destinations: Sequence[Any],
        departure_time: DepartureTime = None,
    ) -> Any:
        """Destination with the longest travel time from origin (the caller's object)."""
        return self._extremum(origin, destinations, departure_time, select_farthest)

    def _extremum(self, origin, destinations, departure_time, select) -> Any:
        if origin is None:
            raise InvalidInputError("origin is required")
        if not destinations:
            raise InvalidInputError("destinations must not be empty")

        entries = self.distance_matrix([origin], destinations, departure_time)
        best = select(entries)
        return destinations[best.destination_index]

    # Geometry -------------------------------------------------------------

    @staticmethod
    def point_in_polygon(point: Any, coords: Any) -> bool:
        return point_in_polygon(point, coords)

    @staticmethod
    def _keys(values: Sequence[Any]) -> list[str]:
        return [location_key(v, str(i)) for i, v in enumerate(values)]
