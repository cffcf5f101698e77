"""Caller-side debounce for scavenge prompts."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import threading
from typing import Callable, Dict, Iterable, Optional, Set

from ..config import POI_PROMPT_COOLDOWN_S
from ..models import ProximityEvent

Clock = Callable[[], datetime]


class ProximityPromptGate:
    """Decides which proximity event, if any, becomes a prompt.

    Only one prompt is open at a time. Scavenged POIs never prompt again and a
    dismissed POI stays quiet for ``cooldown_s`` seconds.
    """

    def __init__(
        self,
        cooldown_s: float = POI_PROMPT_COOLDOWN_S,
        clock: Clock | None = None,
    ) -> None:
        self.cooldown_s = cooldown_s
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._active: Optional[ProximityEvent] = None
        self._dismissed: Dict[str, datetime] = {}
        self._scavenged: Set[str] = set()
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def active(self) -> Optional[ProximityEvent]:
        return self._active

    def offer(self, events: Iterable[ProximityEvent]) -> Optional[ProximityEvent]:
        """Open a prompt for the first eligible event; None when suppressed."""

        now = self._clock()
        with self._lock:
            if self._active is not None:
                return None
            for event in events:
                if event.poi_id in self._scavenged:
                    continue
                dismissed_at = self._dismissed.get(event.poi_id)
                if dismissed_at is not None:
                    if (now - dismissed_at).total_seconds() < self.cooldown_s:
                        continue
                    del self._dismissed[event.poi_id]
                self._active = event
                self._log.info(
                    "Prompting for POI %s at %.1fm", event.poi_id, event.distance_m
                )
                return event
        return None

    def dismiss(self, poi_id: str) -> None:
        with self._lock:
            self._dismissed[poi_id] = self._clock()
            if self._active is not None and self._active.poi_id == poi_id:
                self._active = None

    def mark_scavenged(self, poi_id: str) -> None:
        with self._lock:
            self._scavenged.add(poi_id)
            self._dismissed.pop(poi_id, None)
            if self._active is not None and self._active.poi_id == poi_id:
                self._active = None

    def is_scavenged(self, poi_id: str) -> bool:
        with self._lock:
            return poi_id in self._scavenged

    def reset(self) -> None:
        """Forget all prompt history, e.g. when an exploration session ends."""

        with self._lock:
            self._active = None
            self._dismissed.clear()
            self._scavenged.clear()


__all__ = ["ProximityPromptGate"]
