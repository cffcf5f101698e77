"""Thread-safe in-memory territory repository."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
import threading
from typing import Dict, Iterable, List, Optional

from ..errors import RepositoryNotFoundError
from ..geo.wkt import bbox_around, bboxes_intersect, bounding_box
from ..models import Coordinate, Territory

LOGGER = logging.getLogger(__name__)


class InMemoryTerritoryRepository:
    """Keeps territories in a dict keyed by id.

    Used by tests, the replay tool and hosts that sync storage elsewhere.
    Deleting a territory deactivates it, matching the backend soft delete.
    """

    def __init__(self, territories: Optional[Iterable[Territory]] = None):
        self._lock = threading.RLock()
        self._items: Dict[str, Territory] = {}
        for territory in territories or ():
            self._items[territory.id] = territory

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, territory_id: str) -> Territory:
        with self._lock:
            try:
                return self._items[territory_id]
            except KeyError:
                raise RepositoryNotFoundError(
                    f"Territory {territory_id} not found"
                ) from None

    def find_active_territories(
        self, near: Coordinate, radius_m: float
    ) -> List[Territory]:
        with self._lock:
            candidates = [t for t in self._items.values() if t.is_active]
        search_box = bbox_around(near, radius_m)
        matches = [
            territory
            for territory in candidates
            if bboxes_intersect(search_box, bounding_box(territory.boundary))
        ]
        LOGGER.debug(
            "Found %d active territories within %.0fm of (%.6f, %.6f)",
            len(matches),
            radius_m,
            near.latitude,
            near.longitude,
        )
        return matches

    def save(self, territory: Territory) -> Territory:
        if territory.created_at is None:
            territory = replace(territory, created_at=datetime.now(timezone.utc))
        with self._lock:
            self._items[territory.id] = territory
        LOGGER.info(
            "Stored territory %s for owner=%s (%.0f m2)",
            territory.id,
            territory.owner_id,
            territory.area_m2,
        )
        return territory

    def delete(self, territory_id: str) -> None:
        with self._lock:
            territory = self.get(territory_id)
            self._items[territory_id] = replace(territory, is_active=False)
        LOGGER.info("Deactivated territory %s", territory_id)

    def list_for_owner(self, owner_id: str) -> List[Territory]:
        wanted = owner_id.lower()
        with self._lock:
            owned = [
                t
                for t in self._items.values()
                if t.is_active and t.owner_id.lower() == wanted
            ]
        _epoch = datetime.min.replace(tzinfo=timezone.utc)
        owned.sort(key=lambda t: t.created_at or _epoch, reverse=True)
        return owned


__all__ = ["InMemoryTerritoryRepository"]
