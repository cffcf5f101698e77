"""Geodesic helpers used by the recorder, the claim validator and the POI detector.

This module provides distance/bearing, polygon area, point-in-polygon,
self-intersection and overlap tests, plus storage and datum helpers.
"""

from .area import area_from_edge_terms, polygon_area, require_polygon, ring_edge_term
from .convert import batch_wgs84_to_gcj02, wgs84_to_gcj02
from .distance import (
    LatLon,
    as_latlon,
    haversine_distance,
    haversine_many,
    initial_bearing,
    path_length,
)
from .polygon import (
    SelfIntersection,
    find_self_intersection,
    overlap_area_m2,
    point_in_polygon,
    segments_intersect,
)
from .projection import project_points, project_to_local_metric
from .wkt import bbox_around, bboxes_intersect, bounding_box, to_wkt_polygon

__all__ = [
    "LatLon",
    "SelfIntersection",
    "area_from_edge_terms",
    "as_latlon",
    "batch_wgs84_to_gcj02",
    "bbox_around",
    "bboxes_intersect",
    "bounding_box",
    "find_self_intersection",
    "haversine_distance",
    "haversine_many",
    "initial_bearing",
    "overlap_area_m2",
    "path_length",
    "point_in_polygon",
    "polygon_area",
    "project_points",
    "project_to_local_metric",
    "require_polygon",
    "ring_edge_term",
    "segments_intersect",
    "to_wkt_polygon",
    "wgs84_to_gcj02",
]
