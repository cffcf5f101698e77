"""Polygon area on the WGS-84 ellipsoid."""

from __future__ import annotations

import math
from typing import Sequence

from pyproj import Geod

from ..errors import DegenerateGeometryError
from .distance import EARTH_RADIUS_M, PointLike, as_latlon

_GEOD = Geod(ellps="WGS84")


def polygon_area(points: Sequence[PointLike]) -> float:
    """Return the enclosed area (m²) of a simple polygon.

    The ring is implicitly closed. Fewer than 3 points yields ``0.0`` rather
    than an error so the function stays total; use :func:`require_polygon`
    where a hard guard is needed.
    """

    if len(points) < 3:
        return 0.0
    latlon = [as_latlon(point) for point in points]
    lats = [lat for lat, _ in latlon]
    lons = [lon for _, lon in latlon]
    area, _perimeter = _GEOD.polygon_area_perimeter(lons, lats)
    return abs(float(area))


def require_polygon(points: Sequence[PointLike]) -> None:
    """Raise :class:`DegenerateGeometryError` when ``points`` cannot form a ring."""

    if len(points) < 3:
        raise DegenerateGeometryError(
            f"A polygon needs at least 3 points, got {len(points)}"
        )


def ring_edge_term(a: PointLike, b: PointLike) -> float:
    """Spherical shoelace contribution of the edge ``a -> b``.

    Summing the terms of every edge of a closed ring and passing the total to
    :func:`area_from_edge_terms` gives an approximate area. Used for running
    estimates where recomputing the geodesic area per sample is too costly.
    """

    lat1, lon1 = as_latlon(a)
    lat2, lon2 = as_latlon(b)
    return math.radians(lon2 - lon1) * (
        2.0 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
    )


def area_from_edge_terms(total: float) -> float:
    return abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0)


__all__ = [
    "area_from_edge_terms",
    "polygon_area",
    "require_polygon",
    "ring_edge_term",
]
