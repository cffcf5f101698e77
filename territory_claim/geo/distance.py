"""Great-circle distance and bearing helpers."""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in metres

LatLon = Tuple[float, float]
# Anything exposing ``latitude``/``longitude`` attributes, or a (lat, lon) pair.
PointLike = Union[LatLon, Any]


def as_latlon(point: PointLike) -> LatLon:
    """Return ``(lat, lon)`` for a coordinate object or a pair."""

    lat = getattr(point, "latitude", None)
    if lat is not None:
        return float(lat), float(point.longitude)
    if len(point) != 2:
        raise ValueError("Expected a lat/lon pair or a coordinate object")
    return float(point[0]), float(point[1])


def haversine_distance(a: PointLike, b: PointLike) -> float:
    """Return the great-circle distance between two points in metres."""

    lat1, lon1 = as_latlon(a)
    lat2, lon2 = as_latlon(b)
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def haversine_many(origin: PointLike, points: Sequence[PointLike]) -> NDArray[np.float64]:
    """Vectorised distances (metres) from ``origin`` to each point."""

    if not points:
        return np.empty(0, dtype=float)
    lat0, lon0 = as_latlon(origin)
    latlon = np.asarray([as_latlon(p) for p in points], dtype=float)
    phi1 = np.radians(lat0)
    phi2 = np.radians(latlon[:, 0])
    d_phi = phi2 - phi1
    d_lambda = np.radians(latlon[:, 1] - lon0)
    h = np.sin(d_phi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.minimum(1.0, np.sqrt(h)))


def initial_bearing(a: PointLike, b: PointLike) -> float:
    """Return the initial bearing from ``a`` to ``b`` in degrees [0, 360)."""

    lat1, lon1 = as_latlon(a)
    lat2, lon2 = as_latlon(b)
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)
    x = math.sin(d_lambda) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(
        d_lambda
    )
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def path_length(points: Iterable[PointLike]) -> float:
    """Sum of haversine distances between consecutive points."""

    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_distance(previous, point)
        previous = point
    return total


__all__ = [
    "EARTH_RADIUS_M",
    "LatLon",
    "PointLike",
    "as_latlon",
    "haversine_distance",
    "haversine_many",
    "initial_bearing",
    "path_length",
]
