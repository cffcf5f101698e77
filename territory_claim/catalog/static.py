"""In-memory POI catalog."""

from __future__ import annotations

import logging
from typing import Iterable, List

import numpy as np

from ..config import POI_DUPLICATE_DISTANCE_M, POI_MAX_RESULTS, POI_SEARCH_RADIUS_M
from ..geo.distance import haversine_distance, haversine_many
from ..models import POI, Coordinate

LOGGER = logging.getLogger(__name__)


class StaticPOICatalog:
    """Serves nearby queries from a fixed list of POIs.

    Results are sorted by distance, POIs within ``duplicate_distance_m`` of an
    already listed (closer) POI are dropped, and at most ``max_results`` are
    returned.
    """

    def __init__(
        self,
        pois: Iterable[POI],
        *,
        duplicate_distance_m: float = POI_DUPLICATE_DISTANCE_M,
        max_results: int = POI_MAX_RESULTS,
    ) -> None:
        self._pois = tuple(pois)
        self.duplicate_distance_m = duplicate_distance_m
        self.max_results = max_results

    def __len__(self) -> int:
        return len(self._pois)

    def list_nearby(
        self, center: Coordinate, radius_m: float = POI_SEARCH_RADIUS_M
    ) -> List[POI]:
        if not self._pois:
            return []
        distances = haversine_many(center, [poi.coordinate for poi in self._pois])
        order = np.argsort(distances, kind="stable")
        kept: List[POI] = []
        duplicates = 0
        for index in order:
            if distances[index] > radius_m:
                break
            poi = self._pois[int(index)]
            if any(
                haversine_distance(poi.coordinate, other.coordinate)
                < self.duplicate_distance_m
                for other in kept
            ):
                duplicates += 1
                continue
            kept.append(poi)
            if len(kept) >= self.max_results:
                break
        LOGGER.debug(
            "Nearby query (%.5f, %.5f) r=%.0fm -> %d POIs (%d duplicates dropped)",
            center.latitude,
            center.longitude,
            radius_m,
            len(kept),
            duplicates,
        )
        return kept


__all__ = ["StaticPOICatalog"]
