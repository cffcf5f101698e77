"""TTL cache in front of any POI catalog."""

from __future__ import annotations

import logging
from threading import RLock
import time
from typing import Callable, List, Tuple

from cachetools import TTLCache

from ..config import POI_CACHE_SIZE, POI_CACHE_TTL_S, POI_SEARCH_RADIUS_M
from ..models import POI, Coordinate
from .base import POICatalog

_CacheKey = Tuple[float, float, float]


class CachedPOICatalog:
    """Caches ``list_nearby`` results keyed by a rounded center and radius.

    Four decimal places keep nearby queries (~11 m apart) on the same entry.
    """

    def __init__(
        self,
        inner: POICatalog,
        *,
        maxsize: int = POI_CACHE_SIZE,
        ttl_s: float = POI_CACHE_TTL_S,
        precision: int = 4,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._precision = precision
        self._cache: TTLCache[_CacheKey, Tuple[POI, ...]] = TTLCache(
            maxsize=max(1, maxsize), ttl=ttl_s, timer=timer
        )
        self._lock = RLock()
        self._log = logging.getLogger(self.__class__.__name__)

    def _key(self, center: Coordinate, radius_m: float) -> _CacheKey:
        return (
            round(center.latitude, self._precision),
            round(center.longitude, self._precision),
            round(float(radius_m), 1),
        )

    def list_nearby(
        self, center: Coordinate, radius_m: float = POI_SEARCH_RADIUS_M
    ) -> List[POI]:
        key = self._key(center, radius_m)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            self._log.debug("POI cache hit for %s", key)
            return list(cached)
        result = tuple(self._inner.list_nearby(center, radius_m))
        with self._lock:
            self._cache[key] = result
        return list(result)

    def invalidate(self) -> None:
        with self._lock:
            self._cache.clear()


__all__ = ["CachedPOICatalog"]
