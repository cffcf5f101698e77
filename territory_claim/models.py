"""Core domain dataclasses: coordinates, territories and points of interest."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import DegenerateGeometryError
from .geo.area import polygon_area
from .geo.wkt import bounding_box, to_wkt_polygon

LOGGER = logging.getLogger(__name__)

LatLon = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A single WGS-84 position, optionally carrying GPS fix metadata."""

    latitude: float
    longitude: float
    altitude: Optional[float] = None
    accuracy_m: Optional[float] = None
    timestamp: Optional[datetime] = None

    def as_latlon(self) -> LatLon:
        return (self.latitude, self.longitude)


class POICategory(str, Enum):
    HOSPITAL = "hospital"
    PHARMACY = "pharmacy"
    SUPERMARKET = "supermarket"
    CONVENIENCE = "convenience"
    STORE = "store"
    GAS_STATION = "gas_station"
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    OTHER = "other"

    @property
    def danger_level(self) -> int:
        return _DANGER_LEVELS[self]


# Fixed danger table (1 = safest, 5 = deadliest).
_DANGER_LEVELS: Dict[POICategory, int] = {
    POICategory.RESTAURANT: 1,
    POICategory.CAFE: 1,
    POICategory.HOSPITAL: 2,
    POICategory.PHARMACY: 2,
    POICategory.SUPERMARKET: 3,
    POICategory.CONVENIENCE: 3,
    POICategory.STORE: 3,
    POICategory.OTHER: 3,
    POICategory.GAS_STATION: 4,
}


@dataclass(frozen=True, slots=True)
class POI:
    """Read-only point of interest loaded from an external catalog."""

    id: str
    name: str
    coordinate: Coordinate
    category: POICategory = POICategory.OTHER

    @property
    def danger_level(self) -> int:
        return self.category.danger_level


@dataclass(frozen=True, slots=True)
class ProximityEvent:
    """A POI within prompt range of the current position."""

    poi_id: str
    distance_m: float
    timestamp: datetime
    poi: Optional[POI] = None


class RejectionReason(str, Enum):
    """Why the path recorder dropped a location sample."""

    LOW_ACCURACY = "low_accuracy"
    MISSING_TIMESTAMP = "missing_timestamp"
    OUT_OF_ORDER = "out_of_order"
    TOO_SOON = "too_soon"
    TOO_CLOSE = "too_close"
    SPEED_JUMP = "speed_jump"
    CAPACITY = "capacity"


class FailureReason(str, Enum):
    """Why a finished claim attempt could not become a territory."""

    TOO_FEW_POINTS = "too_few_points"
    AREA_TOO_SMALL = "area_too_small"
    SELF_INTERSECTING = "self_intersecting"
    OVERLAPS_EXISTING_TERRITORY = "overlaps_existing_territory"
    PATH_TOO_SHORT = "path_too_short"
    OVERLAP_CHECK_UNAVAILABLE = "overlap_check_unavailable"


@dataclass(frozen=True, slots=True)
class Territory:
    """Persisted, closed polygon claimed by a player.

    ``area_m2`` and ``point_count`` are derived from ``boundary`` and cannot
    be passed in. The boundary ring is implicitly closed (first != last).
    """

    id: str
    owner_id: str
    boundary: Tuple[Coordinate, ...]
    name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_active: bool = True
    area_m2: float = field(init=False)
    point_count: int = field(init=False)

    def __post_init__(self) -> None:
        boundary = tuple(self.boundary)
        if len(boundary) >= 2 and boundary[0].as_latlon() == boundary[-1].as_latlon():
            boundary = boundary[:-1]
        distinct = {point.as_latlon() for point in boundary}
        if len(distinct) < 3:
            raise DegenerateGeometryError(
                f"Territory {self.id} needs at least 3 distinct boundary points"
            )
        area = polygon_area(boundary)
        if area <= 0:
            raise DegenerateGeometryError(f"Territory {self.id} encloses no area")
        object.__setattr__(self, "boundary", boundary)
        object.__setattr__(self, "area_m2", area)
        object.__setattr__(self, "point_count", len(boundary))

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return f"Territory #{self.id[:6]}"

    @property
    def formatted_area(self) -> str:
        return f"{self.area_m2:,.0f} m²"

    def to_coordinates(self) -> List[LatLon]:
        return [point.as_latlon() for point in self.boundary]

    def to_payload(self) -> Dict[str, Any]:
        """Return the backend row representation of the territory."""

        min_lat, max_lat, min_lon, max_lon = bounding_box(self.boundary)
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "name": self.name,
            "path": [
                {"lat": point.latitude, "lon": point.longitude}
                for point in self.boundary
            ],
            "polygon": to_wkt_polygon(self.boundary),
            "bbox_min_lat": min_lat,
            "bbox_max_lat": max_lat,
            "bbox_min_lon": min_lon,
            "bbox_max_lon": max_lon,
            "area": self.area_m2,
            "point_count": self.point_count,
            "is_active": self.is_active,
            "started_at": _format_timestamp(self.started_at),
            "completed_at": _format_timestamp(self.completed_at),
            "created_at": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_payload(cls, row: Mapping[str, Any]) -> "Territory":
        """Build a territory from a backend row; the stored area is ignored."""

        raw_path: Sequence[Mapping[str, Any]] = row.get("path") or []
        boundary = []
        for point in raw_path:
            lat = point.get("lat")
            lon = point.get("lon")
            if lat is None or lon is None:
                continue
            boundary.append(Coordinate(float(lat), float(lon)))
        territory = cls(
            id=str(row["id"]),
            owner_id=str(row.get("user_id", "")),
            boundary=tuple(boundary),
            name=row.get("name") or None,
            started_at=_parse_timestamp(row.get("started_at")),
            completed_at=_parse_timestamp(row.get("completed_at")),
            created_at=_parse_timestamp(row.get("created_at")),
            is_active=bool(row.get("is_active", True)),
        )
        stored_area = row.get("area")
        if stored_area is not None:
            try:
                drift = abs(float(stored_area) - territory.area_m2)
            except (TypeError, ValueError):
                drift = None
            if drift is not None and drift > max(1.0, territory.area_m2 * 0.01):
                LOGGER.debug(
                    "Stored area for territory %s differs from boundary area by %.1f m2",
                    territory.id,
                    drift,
                )
        return territory


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        LOGGER.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "Coordinate",
    "FailureReason",
    "LatLon",
    "POI",
    "POICategory",
    "ProximityEvent",
    "RejectionReason",
    "Territory",
]
