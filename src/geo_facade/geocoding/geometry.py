"""
Point-in-polygon test.

Even-odd (crossing number) rule over a ring of lat/lng vertices. Edges run
from vertex i to vertex i-1, wrapping around. An edge is counted when the
point's longitude falls in the half-open span [min, max) of the edge and
the point lies strictly south (lower latitude) of the edge at that
longitude, i.e. a ray is cast towards increasing latitude.

On the boundary of an axis-aligned rectangle this puts the south-west
corner inside and the other three corners outside.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from shapely.geometry import Point, Polygon

from .locations import as_mapping, read_coordinates
from .normalizers import MAX_UNWRAP_DEPTH
from ..utils.errors import InvalidInputError

LatLng = tuple[float, float]


def _to_latlng(value: Any, what: str) -> LatLng:
    for _ in range(MAX_UNWRAP_DEPTH + 1):
        if isinstance(value, Point):
            return value.y, value.x

        record = as_mapping(value)
        if record is None:
            raise InvalidInputError(f"{what} must have lat and lng")

        coords = read_coordinates(record)
        if coords is not None:
            return coords
        # Geopoint wrappers carry their coordinates under `location`
        if "location" not in record:
            raise InvalidInputError(f"{what} must have lat and lng")
        value = record["location"]

    raise InvalidInputError(f"{what} is nested more than {MAX_UNWRAP_DEPTH} levels deep")


def _ring(coords: Any) -> list[LatLng]:
    if isinstance(coords, Polygon):
        # shapely closes rings by repeating the first vertex
        return [(y, x) for x, y in list(coords.exterior.coords)[:-1]]

    if not isinstance(coords, (Sequence, Mapping)) or isinstance(coords, str):
        record = as_mapping(coords)
        if record is None:
            raise InvalidInputError("polygon must be a sequence of lat/lng vertices")
        coords = record

    if isinstance(coords, Mapping):
        # Whole polygon objects carry their vertices under `points`
        if "points" not in coords:
            raise InvalidInputError("polygon must be a sequence of lat/lng vertices")
        coords = coords["points"]

    ring = [_to_latlng(c, "polygon vertex") for c in coords]
    if len(ring) < 3:
        raise InvalidInputError("polygon must have at least 3 vertices")
    return ring


def point_in_polygon(point: Any, coords: Any) -> bool:
    """
    Determine whether a lat/lng point is inside a polygon.

    Args:
        point: lat/lng or latitude/longitude record, a geopoint wrapper
            with a `location` field, or a shapely Point (x=lng, y=lat)
        coords: sequence of vertex records, a polygon record with a
            `points` field, or a shapely Polygon

    Returns:
        True if the point is inside the ring

    Raises:
        InvalidInputError: missing coordinates or fewer than 3 vertices
    """
    lat, lng = _to_latlng(point, "point")
    ring = _ring(coords)

    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        lat_i, lng_i = ring[i]
        lat_j, lng_j = ring[j]
        if (lng_i <= lng < lng_j) or (lng_j <= lng < lng_i):
            crossing = (lat_j - lat_i) * (lng - lng_i) / (lng_j - lng_i) + lat_i
            if lat < crossing:
                inside = not inside
        j = i
    return inside
