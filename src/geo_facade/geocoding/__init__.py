"""
- Models: Data structures (CanonicalLocation, GeocodeResult, Route, ...)
- Locations: Input shapes (CoordinatePair, AddressObject, ...)
- Base classes: Abstract interfaces
- Classifier: Postal code to country
- Normalizers: Location to canonical form
- Geometry: Point-in-polygon
- Throttling: Rate limiting for API calls
- Gateway: Throttled, retried provider calls
- Providers: HTTP bindings to the external services
"""

from .models import (
    CountryCode,
    CanonicalKind,
    CanonicalLocation,
    GeocodeResult,
    AddressComponent,
    ReverseGeocodeResult,
    RouteStop,
    RouteLeg,
    Route,
    MatrixEntry,
)

from .locations import (
    CoordinatePair,
    AddressObject,
    AddressString,
    WrappedEntity,
    Location,
    parse_location,
)

from .base import (
    Normalizer,
    RateLimiter,
    GeocodingProvider,
    PlaceLookup,
)

from .classifier import (
    classify,
    POSTAL_PATTERNS,
)

from .normalizers import (
    LocationNormalizer,
    MAX_UNWRAP_DEPTH,
)

from .geometry import (
    point_in_polygon,
)

from .throttling import (
    TokenBucket,
    NoOpRateLimiter,
    shared_bucket,
    reset_shared_bucket,
)

from .gateway import (
    RateLimitedGateway,
    ResponseShape,
)

from .providers import (
    GoogleMapsClient,
    ZippopotamClient,
)

__all__ = [
    # Models
    "CountryCode",
    "CanonicalKind",
    "CanonicalLocation",
    "GeocodeResult",
    "AddressComponent",
    "ReverseGeocodeResult",
    "RouteStop",
    "RouteLeg",
    "Route",
    "MatrixEntry",
    # Locations
    "CoordinatePair",
    "AddressObject",
    "AddressString",
    "WrappedEntity",
    "Location",
    "parse_location",
    # Base classes
    "Normalizer",
    "RateLimiter",
    "GeocodingProvider",
    "PlaceLookup",
    # Classifier
    "classify",
    "POSTAL_PATTERNS",
    # Normalizers
    "LocationNormalizer",
    "MAX_UNWRAP_DEPTH",
    # Geometry
    "point_in_polygon",
    # Throttling
    "TokenBucket",
    "NoOpRateLimiter",
    "shared_bucket",
    "reset_shared_bucket",
    # Gateway
    "RateLimitedGateway",
    "ResponseShape",
    # Providers
    "GoogleMapsClient",
    "ZippopotamClient",
]
