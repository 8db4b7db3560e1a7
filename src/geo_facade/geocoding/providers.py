"""
HTTP bindings to the external providers.

- GoogleMapsClient: Google Maps Web Services (geocode, reverse geocode,
  directions, distance matrix)
- ZippopotamClient: Zippopotam.us postal code to place lookup

Both return decoded JSON bodies and let `requests` exceptions propagate;
status interpretation and retries belong to the gateway.

Reference: https://developers.google.com/maps/documentation
"""

import logging
from typing import Any, Optional

import requests

from .base import GeocodingProvider, PlaceLookup

logger = logging.getLogger(__name__)


class GoogleMapsClient(GeocodingProvider):
    """
    Google Maps Web Services wrapper.

    Implements the GeocodingProvider interface over a shared requests.Session.
    """

    def __init__(
        self,
        api_key: str,
        api_base_url: str = "https://maps.googleapis.com/maps/api",
        timeout: float = 10.0,
        language: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Google Maps wrapper.

        Args:
            api_key: Google Maps API key
            api_base_url: Base URL for the web services
            timeout: HTTP request timeout in seconds
            language: Default response language
            session: Optional session (one is created otherwise)
        """
        self.api_key = api_key
        self.api_base_url = api_base_url
        self.timeout = timeout
        self.language = language
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

        logger.info(f"Initialized GoogleMapsClient: {api_base_url}, timeout={timeout}s")

    def _get(self, service: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        GET `{base}/{service}/json` and return the decoded body.

        Raises:
            requests.RequestException on network/connection errors and HTTP errors
        """
        # Avoid urljoin stripping the /api segment
        endpoint = f"{self.api_base_url.rstrip('/')}/{service}/json"
        query = {k: v for k, v in params.items() if v is not None}
        if self.language and "language" not in query:
            query["language"] = self.language
        query["key"] = self.api_key

        shown = {k: v for k, v in query.items() if k != "key"}
        logger.debug(f"Querying {service}: {shown}")

        response = self.session.get(endpoint, params=query, timeout=self.timeout)
        logger.debug(f"{service} query status: {response.status_code}")
        response.raise_for_status()
        return response.json()

    def geocode(self, address: str, **params: Any) -> dict[str, Any]:
        return self._get("geocode", {"address": address, **params})

    def reverse_geocode(self, latlng: str, **params: Any) -> dict[str, Any]:
        return self._get("geocode", {"latlng": latlng, **params})

    def directions(
        self,
        origin: str,
        destination: str,
        waypoints: Optional[list[str]] = None,
        optimize: bool = False,
        **params: Any,
    ) -> dict[str, Any]:
        query: dict[str, Any] = {"origin": origin, "destination": destination, **params}
        if waypoints:
            joined = "|".join(waypoints)
            query["waypoints"] = f"optimize:true|{joined}" if optimize else joined
        return self._get("directions", query)

    def distance_matrix(
        self,
        origins: list[str],
        destinations: list[str],
        **params: Any,
    ) -> dict[str, Any]:
        return self._get(
            "distancematrix",
            {"origins": "|".join(origins), "destinations": "|".join(destinations), **params},
        )

    def close(self) -> None:
        self.session.close()


class ZippopotamClient(PlaceLookup):
    """Zippopotam.us postal code lookup."""

    def __init__(
        self,
        api_base_url: str = "https://api.zippopotam.us",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_base_url = api_base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, country: str, postal_code: str) -> dict[str, Any]:
        """
        Look up places for a postal code.

        An unknown code is answered with HTTP 404 and an empty body;
        it is returned as an empty place list.
        """
        endpoint = f"{self.api_base_url.rstrip('/')}/{country.lower()}/{postal_code}"
        logger.debug(f"Querying places: {country} {postal_code}")
        response = self.session.get(endpoint, timeout=self.timeout)
        if response.status_code == 404:
            return {"places": []}
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self.session.close()
