"""Local metric projection of lat/lon coordinates."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer

from .distance import PointLike, as_latlon

MetricArray = NDArray[np.float64]


def project_to_local_metric(
    points: Sequence[PointLike],
) -> Tuple[MetricArray, Transformer]:
    """Project lat/lon points into a local metric coordinate system."""

    if not points:
        raise ValueError("Cannot reproject an empty point collection")
    transformer = build_local_transformer(points)
    metric = project_points(points, transformer)
    return metric, transformer


def build_local_transformer(points: Sequence[PointLike]) -> Transformer:
    """Build a local UTM transformer centred on the provided coordinates."""

    latlon = [as_latlon(point) for point in points]
    mean_lat = float(np.mean([pt[0] for pt in latlon]))
    mean_lon = float(np.mean([pt[1] for pt in latlon]))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    if mean_lat >= 0:
        epsg = 32600 + zone
    else:
        epsg = 32700 + zone
    try:
        target_crs = CRS.from_epsg(epsg)
    except Exception:
        target_crs = CRS.from_epsg(3857)
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def project_points(points: Iterable[PointLike], transformer: Transformer) -> MetricArray:
    """Project lat/lon pairs through an existing transformer."""

    latlon = [as_latlon(point) for point in points]
    if not latlon:
        return np.empty((0, 2), dtype=float)
    lats = np.asarray([pt[0] for pt in latlon], dtype=float)
    lons = np.asarray([pt[1] for pt in latlon], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


__all__ = [
    "MetricArray",
    "build_local_transformer",
    "project_points",
    "project_to_local_metric",
]
