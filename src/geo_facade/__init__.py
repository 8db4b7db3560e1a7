"""Location normalization and rate-limited geocoding/routing facade."""

from .facade import GeoFacade
from .settings import Settings, get_settings
from .utils.errors import (
    GeoFacadeError,
    ConfigurationError,
    ProviderError,
    InvalidInputError,
    RateLimitedError,
    ProviderRejectedError,
    ProviderUnavailableError,
)

__all__ = [
    "GeoFacade",
    "Settings",
    "get_settings",
    "GeoFacadeError",
    "ConfigurationError",
    "ProviderError",
    "InvalidInputError",
    "RateLimitedError",
    "ProviderRejectedError",
    "ProviderUnavailableError",
]
