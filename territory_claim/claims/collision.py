"""Live collision warnings while walking near other players' territories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
import logging
import math
from typing import List, Optional, Sequence

from ..config import (
    COLLISION_CAUTION_DISTANCE_M,
    COLLISION_DANGER_DISTANCE_M,
    COLLISION_WARNING_DISTANCE_M,
)
from ..geo.distance import haversine_many
from ..geo.polygon import point_in_polygon, segments_intersect
from ..models import Coordinate, Territory

LOGGER = logging.getLogger(__name__)


class WarningLevel(IntEnum):
    SAFE = 0
    CAUTION = 1
    WARNING = 2
    DANGER = 3
    VIOLATION = 4


class CollisionType(str, Enum):
    POINT_IN_TERRITORY = "point_in_territory"
    PATH_CROSSES_TERRITORY = "path_crosses_territory"


@dataclass(frozen=True, slots=True)
class CollisionResult:
    has_collision: bool
    warning_level: WarningLevel = WarningLevel.SAFE
    collision_type: Optional[CollisionType] = None
    closest_distance_m: Optional[float] = None
    message: Optional[str] = None
    territory_id: Optional[str] = None

    @classmethod
    def safe(cls, closest_distance_m: Optional[float] = None) -> "CollisionResult":
        return cls(has_collision=False, closest_distance_m=closest_distance_m)


def foreign_territories(
    owner_id: str, territories: Sequence[Territory]
) -> List[Territory]:
    """Active territories not owned by ``owner_id`` (case-insensitive)."""

    owner = owner_id.lower()
    return [t for t in territories if t.is_active and t.owner_id.lower() != owner]


def check_start_position(
    point: Coordinate, owner_id: str, territories: Sequence[Territory]
) -> CollisionResult:
    """A claim may not start inside someone else's territory."""

    for territory in foreign_territories(owner_id, territories):
        if point_in_polygon(point, territory.boundary):
            LOGGER.warning(
                "Start position lies inside territory %s of %s",
                territory.id,
                territory.owner_id,
            )
            return CollisionResult(
                has_collision=True,
                warning_level=WarningLevel.VIOLATION,
                collision_type=CollisionType.POINT_IN_TERRITORY,
                closest_distance_m=0.0,
                message="Cannot start a claim inside another player's territory",
                territory_id=territory.id,
            )
    return CollisionResult.safe()


def assess_path(
    path: Sequence[Coordinate],
    owner_id: str,
    territories: Sequence[Territory],
    *,
    caution_m: float = COLLISION_CAUTION_DISTANCE_M,
    warning_m: float = COLLISION_WARNING_DISTANCE_M,
    danger_m: float = COLLISION_DANGER_DISTANCE_M,
) -> CollisionResult:
    """Check the walked path against foreign territories.

    Crossing a boundary or stepping inside one is a violation. Otherwise the
    level follows the distance from the latest point to the nearest foreign
    vertex.
    """

    if len(path) < 2:
        return CollisionResult.safe()
    others = foreign_territories(owner_id, territories)
    if not others:
        return CollisionResult.safe()

    violation = _find_violation(path, others)
    if violation is not None:
        return violation

    closest = _closest_vertex_distance(path[-1], others)
    if closest > caution_m:
        return CollisionResult.safe(closest)
    if closest > warning_m:
        level = WarningLevel.CAUTION
        message = f"Caution: {int(closest)} m from another territory"
    elif closest > danger_m:
        level = WarningLevel.WARNING
        message = f"Warning: approaching another territory ({int(closest)} m)"
    else:
        level = WarningLevel.DANGER
        message = f"Danger: about to enter another territory ({int(closest)} m)"
    LOGGER.info("Proximity warning %s at %.0fm", level.name, closest)
    return CollisionResult(
        has_collision=False,
        warning_level=level,
        closest_distance_m=closest,
        message=message,
    )


def _find_violation(
    path: Sequence[Coordinate], others: Sequence[Territory]
) -> Optional[CollisionResult]:
    for index in range(len(path) - 1):
        start = _xy(path[index])
        end = _xy(path[index + 1])
        for territory in others:
            ring = [_xy(point) for point in territory.boundary]
            count = len(ring)
            for j in range(count):
                if segments_intersect(start, end, ring[j], ring[(j + 1) % count]):
                    LOGGER.error(
                        "Path crosses boundary of territory %s", territory.id
                    )
                    return CollisionResult(
                        has_collision=True,
                        warning_level=WarningLevel.VIOLATION,
                        collision_type=CollisionType.PATH_CROSSES_TERRITORY,
                        closest_distance_m=0.0,
                        message="Path may not cross another player's territory",
                        territory_id=territory.id,
                    )
            if point_in_polygon(path[index + 1], territory.boundary):
                LOGGER.error("Path entered territory %s", territory.id)
                return CollisionResult(
                    has_collision=True,
                    warning_level=WarningLevel.VIOLATION,
                    collision_type=CollisionType.POINT_IN_TERRITORY,
                    closest_distance_m=0.0,
                    message="Path may not enter another player's territory",
                    territory_id=territory.id,
                )
    return None


def _closest_vertex_distance(
    point: Coordinate, territories: Sequence[Territory]
) -> float:
    closest = math.inf
    for territory in territories:
        distances = haversine_many(point, territory.boundary)
        if distances.size:
            closest = min(closest, float(distances.min()))
    return closest


def _xy(point: Coordinate) -> tuple:
    return (point.longitude, point.latitude)


__all__ = [
    "CollisionResult",
    "CollisionType",
    "WarningLevel",
    "assess_path",
    "check_start_position",
    "foreign_territories",
]
