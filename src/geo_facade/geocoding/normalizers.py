"""
Location normalizer.

Reduces any supported location shape to a canonical "lat,lng" string or a
formatted address string, together with the inferred country.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from .base import Normalizer
from .classifier import classify, matches, resolve_country
from .locations import (
    AddressObject,
    AddressString,
    CoordinatePair,
    WrappedEntity,
    parse_location,
)
from .models import CanonicalKind, CanonicalLocation, CountryCode
from ..utils.errors import InvalidInputError

logger = logging.getLogger(__name__)

MAX_UNWRAP_DEPTH = 5


def format_coordinate(value: float) -> str:
    """
    Shortest fixed-point form of a coordinate ("41.0" is written "41").

    Never uses exponent notation: 1e-05 is written "0.00001".
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def format_address(address: AddressObject, country: CountryCode) -> str:
    """
    Join address parts: "{street}[ {unit}], {city}[ {state}] {zip}, {country}".
    """
    line1 = address.street
    if address.unit:
        line1 = f"{line1} {address.unit}"
    line2 = address.city
    if address.state:
        line2 = f"{line2} {address.state}"
    line2 = f"{line2} {address.zip}"
    return f"{line1}, {line2}, {country.value}"


class LocationNormalizer(Normalizer):
    """
    Normalizes location inputs to a CanonicalLocation.

    Handles:
    - Wrapper records (order/facility/customer) nested up to max_depth levels
    - Coordinate pairs with short (lat/lng) or long (latitude/longitude) names
    - Structured addresses, country inferred from the postal code
    - Address strings ending in a postal code
    """

    def __init__(self, max_depth: int = MAX_UNWRAP_DEPTH):
        self.max_depth = max_depth

    def normalize(self, value: Any) -> CanonicalLocation:
        location = self._unwrap(value)

        if isinstance(location, CoordinatePair):
            return self._from_coordinates(location)
        if isinstance(location, AddressObject):
            return self._from_address(location)
        if isinstance(location, AddressString):
            return self._from_string(location)

        raise InvalidInputError("location is not a valid type")

    def _unwrap(self, value: Any):
        location = parse_location(value)
        depth = 0
        while isinstance(location, WrappedEntity):
            depth += 1
            if depth > self.max_depth:
                raise InvalidInputError(
                    f"location is nested more than {self.max_depth} levels deep"
                )
            logger.debug(f"Unwrapping location field '{location.field_name}' (depth {depth})")
            location = parse_location(location.inner)
        return location

    def _from_coordinates(self, pair: CoordinatePair) -> CanonicalLocation:
        return CanonicalLocation(
            value=f"{format_coordinate(pair.lat)},{format_coordinate(pair.lng)}",
            kind=CanonicalKind.COORDINATES,
            lat=pair.lat,
            lng=pair.lng,
        )

    def _from_address(self, address: AddressObject) -> CanonicalLocation:
        country = self._address_country(address)
        if country is None:
            raise InvalidInputError(
                "country not supported",
                details={"zip": address.zip, "country": address.country},
            )
        return CanonicalLocation(
            value=format_address(address, country),
            kind=CanonicalKind.ADDRESS,
            country=country,
        )

    @staticmethod
    def _address_country(address: AddressObject) -> Optional[CountryCode]:
        # An explicit, supported country settles codes valid in several countries
        explicit = resolve_country(address.country)
        if explicit is not None and matches(address.zip, explicit):
            return explicit
        return classify(address.zip)

    def _from_string(self, address: AddressString) -> CanonicalLocation:
        tokens = address.text.split()
        country = classify(tokens[-1])
        if country is None and len(tokens) >= 2:
            # "A1A 1A1" style codes split across two tokens
            country = classify(" ".join(tokens[-2:]))
        if country is None:
            raise InvalidInputError(
                "country not supported",
                details={"address": address.text},
            )
        return CanonicalLocation(
            value=f"{address.text}, {country.value}",
            kind=CanonicalKind.ADDRESS,
            country=country,
        )
