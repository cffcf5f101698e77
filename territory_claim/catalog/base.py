"""Contract for sources of points of interest."""

from __future__ import annotations

from typing import List, Protocol

from ..models import POI, Coordinate


class POICatalog(Protocol):
    """Read-only POI source queried around the player."""

    def list_nearby(self, center: Coordinate, radius_m: float) -> List[POI]:
        """Return POIs within ``radius_m`` of ``center``, nearest first."""


__all__ = ["POICatalog"]
