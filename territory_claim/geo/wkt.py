"""Serialisation helpers for polygon storage (WKT, bounding boxes)."""

from __future__ import annotations

import math
from typing import Sequence, Tuple

from shapely.geometry import Polygon

from ..errors import DegenerateGeometryError
from .distance import PointLike, as_latlon

BoundingBox = Tuple[float, float, float, float]


def to_wkt_polygon(points: Sequence[PointLike], srid: int = 4326) -> str:
    """Return ``SRID=<srid>;POLYGON((lon lat, ...))`` with the ring closed.

    WKT puts longitude first; shapely closes the ring for us.
    """

    if len(points) < 3:
        raise DegenerateGeometryError("WKT polygon needs at least 3 points")
    ring = [(lon, lat) for lat, lon in (as_latlon(point) for point in points)]
    return f"SRID={srid};{Polygon(ring).wkt}"


def bounding_box(points: Sequence[PointLike]) -> BoundingBox:
    """Return ``(min_lat, max_lat, min_lon, max_lon)``; zeros when empty."""

    if not points:
        return (0.0, 0.0, 0.0, 0.0)
    latlon = [as_latlon(point) for point in points]
    lats = [lat for lat, _ in latlon]
    lons = [lon for _, lon in latlon]
    return (min(lats), max(lats), min(lons), max(lons))


_METRES_PER_DEGREE_LAT = 111_320.0


def bbox_around(center: PointLike, radius_m: float) -> BoundingBox:
    """Return the lat/lon box enclosing a circle of ``radius_m`` around ``center``."""

    lat, lon = as_latlon(center)
    d_lat = radius_m / _METRES_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    d_lon = min(radius_m / (_METRES_PER_DEGREE_LAT * cos_lat), 180.0)
    return (lat - d_lat, lat + d_lat, lon - d_lon, lon + d_lon)


def bboxes_intersect(first: BoundingBox, second: BoundingBox) -> bool:
    min_lat_a, max_lat_a, min_lon_a, max_lon_a = first
    min_lat_b, max_lat_b, min_lon_b, max_lon_b = second
    return (
        min_lat_a <= max_lat_b
        and min_lat_b <= max_lat_a
        and min_lon_a <= max_lon_b
        and min_lon_b <= max_lon_a
    )


__all__ = [
    "BoundingBox",
    "bbox_around",
    "bboxes_intersect",
    "bounding_box",
    "to_wkt_polygon",
]
