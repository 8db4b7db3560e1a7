from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


from geo_facade.facade import GeoFacade
from geo_facade.geocoding.base import GeocodingProvider, PlaceLookup
from geo_facade.geocoding.gateway import RateLimitedGateway
from geo_facade.geocoding.throttling import NoOpRateLimiter, reset_shared_bucket


class FakeProvider(GeocodingProvider):
    """Returns canned bodies and records every call."""

    def __init__(self, **bodies):
        self.bodies = bodies
        self.calls: list[tuple[str, tuple, dict]] = []

    def _answer(self, name, args, params):
        self.calls.append((name, args, params))
        body = self.bodies[name]
        if isinstance(body, Exception):
            raise body
        return body(*args, **params) if callable(body) else body

    def geocode(self, address, **params):
        return self._answer("geocode", (address,), params)

    def reverse_geocode(self, latlng, **params):
        return self._answer("reverse_geocode", (latlng,), params)

    def directions(self, origin, destination, waypoints=None, optimize=False, **params):
        return self._answer(
            "directions", (origin, destination), {"waypoints": waypoints, "optimize": optimize, **params}
        )

    def distance_matrix(self, origins, destinations, **params):
        return self._answer("distance_matrix", (origins, destinations), params)


class FakePlaces(PlaceLookup):
    def __init__(self, places_by_code):
        self.places_by_code = places_by_code
        self.calls: list[tuple[str, str]] = []

    def lookup(self, country, postal_code):
        self.calls.append((country, postal_code))
        return {"places": self.places_by_code.get((country, postal_code), [])}


@pytest.fixture(autouse=True)
def reset_bucket():
    reset_shared_bucket()
    yield
    reset_shared_bucket()


@pytest.fixture
def gateway():
    return RateLimitedGateway(NoOpRateLimiter(), max_attempts=2, retry_delay_s=0)


@pytest.fixture
def make_facade(gateway):
    def _make(places=None, **bodies):
        provider = FakeProvider(**bodies)
        return GeoFacade(provider, gateway, places=places), provider
    return _make
