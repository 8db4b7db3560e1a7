"""
Location input shapes.

Every value handed to a facade operation is first parsed into exactly one
of the variants of `Location`:

- CoordinatePair: numeric lat/lng (short or long field names)
- AddressObject: structured street address with a postal code
- WrappedEntity: an order/facility/customer record holding a nested location
- AddressString: a free-form address line ending in a postal code

`parse_location` looks at a single nesting level only; unwrapping and
canonicalization live in `normalizers.LocationNormalizer`.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from shapely.geometry import Point

from ..utils.errors import InvalidInputError

# Field names under which a wrapper record may carry its location, in lookup order
WRAPPER_FIELDS: tuple[str, ...] = (
    "postal_address",
    "postalAddress",
    "customer_address",
    "customerAddress",
    "address",
    "location",
)

# (latitude, longitude) field spellings, short form first
COORDINATE_FIELDS: tuple[tuple[str, str], ...] = (
    ("lat", "lng"),
    ("latitude", "longitude"),
)


class CoordinatePair(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["coordinates"] = "coordinates"
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class AddressObject(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["address"] = "address"
    street: str = Field(min_length=1)
    unit: Optional[str] = None
    city: str = Field(min_length=1)
    state: Optional[str] = None
    zip: str = Field(min_length=1)
    country: Optional[str] = None

    @field_validator("street", "unit", "city", "state", "zip", "country", mode="before")
    @classmethod
    def _strip(cls, v):
        # zip codes often arrive as ints
        if v is None:
            return v
        return str(v).strip()


class AddressString(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    text: str = Field(min_length=1)


class WrappedEntity(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["wrapped"] = "wrapped"
    field_name: str
    inner: Any


Location = Annotated[
    Union[CoordinatePair, AddressObject, WrappedEntity, AddressString],
    Field(discriminator="kind"),
]

_VARIANTS = (CoordinatePair, AddressObject, WrappedEntity, AddressString)


def exists(value: Any) -> bool:
    return value is not None


def as_mapping(value: Any) -> Optional[dict[str, Any]]:
    """
    Return a fresh dict view of a record-like value, or None.

    The returned dict is always a copy so later derivation steps never
    touch the caller's object.
    """
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (str, bytes, Sequence, Point)):
        return None
    if hasattr(value, "__dict__"):
        return dict(vars(value))
    return None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def read_coordinates(record: Mapping[str, Any]) -> Optional[tuple[float, float]]:
    """
    Read (lat, lng) from either field spelling.

    Returns None when neither spelling carries two numeric values.
    """
    for lat_name, lng_name in COORDINATE_FIELDS:
        lat = _to_float(record.get(lat_name))
        lng = _to_float(record.get(lng_name))
        if lat is not None and lng is not None:
            return lat, lng
    return None


def _coordinate_pair(lat: float, lng: float) -> CoordinatePair:
    try:
        return CoordinatePair(lat=lat, lng=lng)
    except ValidationError as e:
        raise InvalidInputError.from_validation_error("coordinates", e) from e


def parse_location(value: Any) -> Union[CoordinatePair, AddressObject, WrappedEntity, AddressString]:
    """
    Classify one nesting level of `value` into a Location variant.

    Raises:
        InvalidInputError: value matches none of the known shapes, or a
            structured address is missing required fields
    """
    if value is None:
        raise InvalidInputError("location is required")

    if isinstance(value, _VARIANTS):
        return value

    if isinstance(value, str):
        if not value.strip():
            raise InvalidInputError("location is not a valid type")
        return AddressString(text=value.strip())

    if isinstance(value, Point):
        return _coordinate_pair(value.y, value.x)

    if isinstance(value, Sequence) and not isinstance(value, bytes) and len(value) == 2:
        lat, lng = _to_float(value[0]), _to_float(value[1])
        if lat is not None and lng is not None:
            return _coordinate_pair(lat, lng)

    record = as_mapping(value)
    if record is None:
        raise InvalidInputError("location is not a valid type")

    for name in WRAPPER_FIELDS:
        if exists(record.get(name)):
            return WrappedEntity(field_name=name, inner=record[name])

    coords = read_coordinates(record)
    if coords is not None:
        return _coordinate_pair(*coords)

    if exists(record.get("street")):
        try:
            fields = {k: v for k, v in record.items() if k != "kind"}
            return AddressObject.model_validate(fields)
        except ValidationError as e:
            raise InvalidInputError.from_validation_error("address", e) from e

    raise InvalidInputError("location is not a valid type")


def location_key(value: Any, default: Optional[str] = None) -> Optional[str]:
    """Caller-supplied identifier of a location: `key`, else `id`."""
    record = as_mapping(value)
    if record is None:
        return default
    for name in ("key", "id"):
        if exists(record.get(name)):
            return str(record[name])
    return default
