"""
Abstract base classes for the geocoding system.

These define the interfaces that all concrete implementations must follow.
Provider interfaces describe the boundary to external services: every
method returns the provider's decoded JSON body and raises
`requests.RequestException` on transport failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import CanonicalLocation


class Normalizer(ABC):
    """
    Abstract base for location normalizers.

    Normalizers reduce a location-like value to its canonical form.
    """

    @abstractmethod
    def normalize(self, value: Any) -> CanonicalLocation:
        """
        Normalize a location value.

        Args:
            value: Any supported location shape

        Returns:
            CanonicalLocation

        Raises:
            InvalidInputError: value cannot be normalized
        """
        pass

    def normalize_batch(self, values: list[Any]) -> list[CanonicalLocation]:
        """
        Normalize multiple values. Default implementation calls normalize()
        for each value, but subclasses can override for efficiency.
        """
        return [self.normalize(v) for v in values]


class RateLimiter(ABC):
    """
    Abstract base for rate limiters.

    Rate limiters control the rate at which requests are made,
    useful for respecting API rate limits.
    """

    @abstractmethod
    def wait(self) -> None:
        """Block until it's safe to make another request."""
        pass

    @abstractmethod
    def acquire(self, count: int = 1) -> None:
        """
        Acquire one or more request slots.

        Args:
            count: Number of requests to acquire (for bulk operations)
        """
        pass


class GeocodingProvider(ABC):
    """Geocoding, routing and distance-matrix web service."""

    @abstractmethod
    def geocode(self, address: str, **params: Any) -> dict[str, Any]:
        pass

    @abstractmethod
    def reverse_geocode(self, latlng: str, **params: Any) -> dict[str, Any]:
        pass

    @abstractmethod
    def directions(
        self,
        origin: str,
        destination: str,
        waypoints: Optional[list[str]] = None,
        optimize: bool = False,
        **params: Any,
    ) -> dict[str, Any]:
        pass

    @abstractmethod
    def distance_matrix(
        self,
        origins: list[str],
        destinations: list[str],
        **params: Any,
    ) -> dict[str, Any]:
        pass


class PlaceLookup(ABC):
    """Postal code to place lookup service."""

    @abstractmethod
    def lookup(self, country: str, postal_code: str) -> dict[str, Any]:
        """Return a body with a `places` list (possibly empty)."""
        pass
