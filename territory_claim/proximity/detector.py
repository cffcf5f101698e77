"""Stateless POI proximity evaluation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Iterable, List, Optional

from ..config import POI_PROXIMITY_THRESHOLD_M
from ..geo.distance import haversine_many
from ..models import POI, Coordinate, POICategory, ProximityEvent

LOGGER = logging.getLogger(__name__)


def danger_level(category: POICategory | str) -> int:
    """Danger level (1-5) shown for a POI category."""

    return POICategory(category).danger_level


def evaluate(
    position: Coordinate,
    pois: Iterable[POI],
    threshold_m: float = POI_PROXIMITY_THRESHOLD_M,
    now: Optional[datetime] = None,
) -> List[ProximityEvent]:
    """Return events for every POI within ``threshold_m``, nearest first."""

    if threshold_m < 0:
        raise ValueError("threshold_m must be non-negative")
    candidates = list(pois)
    if not candidates:
        return []
    timestamp = now or datetime.now(timezone.utc)
    distances = haversine_many(position, [poi.coordinate for poi in candidates])
    events = [
        ProximityEvent(
            poi_id=poi.id, distance_m=float(distance), timestamp=timestamp, poi=poi
        )
        for poi, distance in zip(candidates, distances)
        if distance <= threshold_m
    ]
    events.sort(key=lambda event: event.distance_m)
    if events:
        LOGGER.debug(
            "%d of %d POIs within %.0fm; nearest %s at %.1fm",
            len(events),
            len(candidates),
            threshold_m,
            events[0].poi_id,
            events[0].distance_m,
        )
    return events


__all__ = ["danger_level", "evaluate"]
