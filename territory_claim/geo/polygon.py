"""Point-in-polygon, segment intersection and polygon overlap helpers."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import List, Optional, Sequence, Tuple

from pyproj import Transformer
from shapely.geometry import Polygon
from shapely.validation import make_valid

from .distance import PointLike, as_latlon
from .projection import MetricArray, project_points, project_to_local_metric

XY = Tuple[float, float]


@dataclass(slots=True)
class SelfIntersection:
    """First pair of crossing ring edges, indexed by their start vertex."""

    first_edge: int
    second_edge: int


def point_in_polygon(point: PointLike, polygon: Sequence[PointLike]) -> bool:
    """Ray-casting test with longitude as X and latitude as Y."""

    if len(polygon) < 3:
        return False
    lat, lon = as_latlon(point)
    ring = [as_latlon(vertex) for vertex in polygon]
    x, y = lon, lat
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        yi, xi = ring[i]
        yj, xj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def segments_intersect(
    p1: XY, p2: XY, p3: XY, p4: XY, *, tolerance: float = 0.0
) -> bool:
    """Return True when segment p1-p2 properly crosses p3-p4.

    Points are planar (metres). An endpoint lying within ``tolerance`` of the
    other *segment* is a touch and returns False; a pair on its own cannot
    tell a touch from a crossing, :func:`find_metric_self_intersection`
    resolves those from the neighbouring edges.
    """

    if _touching_endpoints(p1, p2, p3, p4, tolerance):
        return False
    return _properly_cross(p1, p2, p3, p4)


def find_self_intersection(
    ring: Sequence[PointLike], *, tolerance_m: float = 0.0
) -> Optional[SelfIntersection]:
    """Return the first crossing between non-adjacent edges of a closed ring.

    The ring is implicitly closed. Runs in O(n²) over the edge count.
    """

    count = len(ring)
    if count < 4:
        return None
    metric, _transformer = project_to_local_metric(ring)
    return find_metric_self_intersection(metric, tolerance_m=tolerance_m)


def find_metric_self_intersection(
    metric: MetricArray, *, tolerance_m: float = 0.0
) -> Optional[SelfIntersection]:
    """Metric-space variant of :func:`find_self_intersection`.

    A vertex within ``tolerance_m`` of another edge is a crossing only when
    its previous and next vertices lie on opposite sides of that edge.
    """

    count = len(metric)
    if count < 4:
        return None
    points = [(float(x), float(y)) for x, y in metric]
    for i in range(count):
        a1 = points[i]
        a2 = points[(i + 1) % count]
        for j in range(i + 2, count):
            if i == 0 and j == count - 1:
                # Closing edge shares vertex 0 with edge 0.
                continue
            b1 = points[j]
            b2 = points[(j + 1) % count]
            touches = _touching_endpoints(a1, a2, b1, b2, tolerance_m)
            if not touches:
                crossed = _properly_cross(a1, a2, b1, b2)
            else:
                vertices = (i, (i + 1) % count, j, (j + 1) % count)
                crossed = any(
                    _passes_through(
                        points,
                        vertices[index],
                        (b1, b2) if index < 2 else (a1, a2),
                        tolerance_m,
                    )
                    for index in touches
                )
            if crossed:
                return SelfIntersection(first_edge=i, second_edge=j)
    return None


def overlap_area_m2(
    candidate: Sequence[PointLike],
    other: Sequence[PointLike],
    transformer: Optional[Transformer] = None,
) -> float:
    """Return the intersection area (m²) of two lat/lon polygons."""

    if len(candidate) < 3 or len(other) < 3:
        return 0.0
    if transformer is None:
        candidate_metric, transformer = project_to_local_metric(candidate)
    else:
        candidate_metric = project_points(candidate, transformer)
    other_metric = project_points(other, transformer)
    first = _valid_polygon(candidate_metric)
    second = _valid_polygon(other_metric)
    if first.is_empty or second.is_empty:
        return 0.0
    if not first.intersects(second):
        return 0.0
    return float(first.intersection(second).area)


def _valid_polygon(metric: MetricArray):
    polygon = Polygon(metric)
    if not polygon.is_valid:
        return make_valid(polygon)
    return polygon


def _signed_offset(origin: XY, target: XY, point: XY) -> float:
    """Signed perpendicular distance of ``point`` from the line origin->target."""

    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    length = math.hypot(dx, dy)
    cross = dx * (point[1] - origin[1]) - dy * (point[0] - origin[0])
    if length == 0:
        return math.hypot(point[0] - origin[0], point[1] - origin[1])
    return cross / length


def _segment_distance(point: XY, start: XY, end: XY) -> float:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point[0] - start[0], point[1] - start[1])
    t = ((point[0] - start[0]) * dx + (point[1] - start[1]) * dy) / length_sq
    t = min(1.0, max(0.0, t))
    return math.hypot(point[0] - (start[0] + t * dx), point[1] - (start[1] + t * dy))


def _properly_cross(p1: XY, p2: XY, p3: XY, p4: XY) -> bool:
    d1 = _signed_offset(p3, p4, p1)
    d2 = _signed_offset(p3, p4, p2)
    d3 = _signed_offset(p1, p2, p3)
    d4 = _signed_offset(p1, p2, p4)
    return d1 * d2 < 0 and d3 * d4 < 0


def _touching_endpoints(
    p1: XY, p2: XY, p3: XY, p4: XY, tolerance: float
) -> List[int]:
    """Indexes (0-3 for p1..p4) of endpoints within tolerance of the other segment."""

    touching = []
    for index, (point, start, end) in enumerate(
        ((p1, p3, p4), (p2, p3, p4), (p3, p1, p2), (p4, p1, p2))
    ):
        if _segment_distance(point, start, end) <= tolerance:
            touching.append(index)
    return touching


def _passes_through(
    points: Sequence[XY], vertex: int, edge: Tuple[XY, XY], tolerance: float
) -> bool:
    """True when the path enters ``vertex`` from one side of ``edge`` and leaves on the other."""

    count = len(points)
    before = _signed_offset(edge[0], edge[1], points[(vertex - 1) % count])
    after = _signed_offset(edge[0], edge[1], points[(vertex + 1) % count])
    return (before > tolerance and after < -tolerance) or (
        before < -tolerance and after > tolerance
    )


__all__ = [
    "SelfIntersection",
    "find_metric_self_intersection",
    "find_self_intersection",
    "overlap_area_m2",
    "point_in_polygon",
    "segments_intersect",
]
