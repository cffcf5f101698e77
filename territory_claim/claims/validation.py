"""Geometric validation that turns a finished path into a territory.

Checks run in a fixed order and stop at the first failure:

1. enough distinct boundary points,
2. the boundary does not cross itself,
3. the enclosed area is large enough,
4. the walked distance is long enough (only when configured),
5. no overlap with an existing active territory.

Self-intersection runs before area: the lobes of a figure-eight cancel out in
the area sum.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List, Optional, Sequence, Tuple

from ..errors import DegenerateGeometryError, ValidationFailed
from ..geo.area import polygon_area
from ..geo.distance import haversine_distance
from ..geo.polygon import find_metric_self_intersection, overlap_area_m2
from ..geo.projection import project_to_local_metric
from ..geo.wkt import bounding_box
from ..models import Coordinate, FailureReason, Territory
from ..repository.base import TerritoryRepository
from .models import ClaimConfig

Boundary = Tuple[Coordinate, ...]


def build_boundary(path: Sequence[Coordinate], closure_tolerance_m: float) -> Boundary:
    """Return the polygon ring for a recorded path.

    Consecutive duplicates are removed, then a final sample back within the
    closure tolerance of the start is dropped since it closes the ring.
    """

    points: List[Coordinate] = []
    for point in path:
        if points and points[-1].as_latlon() == point.as_latlon():
            continue
        points.append(point)
    if len(points) >= 2:
        if haversine_distance(points[0], points[-1]) <= closure_tolerance_m:
            points.pop()
    return tuple(points)


@dataclass(slots=True)
class ValidationRequest:
    territory_id: str
    owner_id: str
    path: Sequence[Coordinate]
    walked_distance_m: float
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ClaimValidator:
    """Runs the ordered geometric checks against one finished path."""

    def __init__(
        self,
        config: ClaimConfig,
        repository: TerritoryRepository,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.repository = repository
        self._log = logger or logging.getLogger(self.__class__.__name__)

    def validate(self, request: ValidationRequest) -> Territory:
        """Return the validated territory or raise :class:`ValidationFailed`."""

        config = self.config
        boundary = build_boundary(request.path, config.closure_tolerance_m)
        distinct = {point.as_latlon() for point in boundary}
        if len(distinct) < max(config.min_points, 3):
            raise ValidationFailed(
                FailureReason.TOO_FEW_POINTS,
                f"{len(distinct)} distinct points, need {config.min_points}",
            )

        metric, transformer = project_to_local_metric(boundary)
        crossing = find_metric_self_intersection(
            metric, tolerance_m=config.self_intersection_tolerance_m
        )
        if crossing is not None:
            raise ValidationFailed(
                FailureReason.SELF_INTERSECTING,
                f"edges {crossing.first_edge} and {crossing.second_edge} cross",
            )

        area = polygon_area(boundary)
        if area <= 0 or area < config.min_area_m2:
            raise ValidationFailed(
                FailureReason.AREA_TOO_SMALL,
                f"{area:.1f} m2 < {config.min_area_m2:.1f} m2",
            )

        if (
            config.min_total_distance_m > 0
            and request.walked_distance_m < config.min_total_distance_m
        ):
            raise ValidationFailed(
                FailureReason.PATH_TOO_SHORT,
                f"{request.walked_distance_m:.1f} m < {config.min_total_distance_m:.1f} m",
            )

        self._check_overlap(request.owner_id, boundary, transformer)

        try:
            territory = Territory(
                id=request.territory_id,
                owner_id=request.owner_id,
                boundary=boundary,
                started_at=request.started_at,
                completed_at=request.completed_at,
            )
        except DegenerateGeometryError as exc:
            raise ValidationFailed(FailureReason.AREA_TOO_SMALL, str(exc)) from exc
        self._log.info(
            "Validated territory %s: %d points, %.1f m2",
            territory.id,
            territory.point_count,
            territory.area_m2,
        )
        return territory

    def _check_overlap(self, owner_id: str, boundary: Boundary, transformer) -> None:
        center, radius_m = _search_circle(boundary)
        radius_m += self.config.overlap_search_margin_m
        try:
            neighbours = self.repository.find_active_territories(center, radius_m)
        except Exception as exc:
            self._log.warning("Overlap lookup failed: %s", exc, exc_info=True)
            raise ValidationFailed(
                FailureReason.OVERLAP_CHECK_UNAVAILABLE, str(exc)
            ) from exc

        owner = owner_id.lower()
        for other in neighbours:
            if not other.is_active:
                continue
            if not self.config.check_own_overlap and other.owner_id.lower() == owner:
                continue
            shared = overlap_area_m2(boundary, other.boundary, transformer)
            if shared > self.config.overlap_tolerance_m2:
                raise ValidationFailed(
                    FailureReason.OVERLAPS_EXISTING_TERRITORY,
                    f"overlaps territory {other.id} by {shared:.1f} m2",
                )


def _search_circle(boundary: Boundary) -> Tuple[Coordinate, float]:
    min_lat, max_lat, min_lon, max_lon = bounding_box(boundary)
    center = Coordinate((min_lat + max_lat) / 2.0, (min_lon + max_lon) / 2.0)
    radius = max(haversine_distance(center, point) for point in boundary)
    return center, radius


__all__ = ["ClaimValidator", "ValidationRequest", "build_boundary"]
