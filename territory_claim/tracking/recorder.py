"""Turns a raw stream of location samples into a clean recorded path."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..config import (
    RECORDER_MAX_ACCURACY_M,
    RECORDER_MAX_POINTS,
    RECORDER_MAX_SPEED_KMH,
    RECORDER_MIN_DISTANCE_M,
    RECORDER_MIN_INTERVAL_S,
    RECORDER_WARN_SPEED_KMH,
)
from ..geo.area import area_from_edge_terms, ring_edge_term
from ..geo.distance import haversine_distance
from ..models import Coordinate, RejectionReason

LOGGER = logging.getLogger(__name__)

__all__ = ["PathRecorder"]


class PathRecorder:
    """Filters noisy GPS samples and accumulates the accepted path.

    A sample is dropped (``ingest`` returns False, nothing changes) when its
    fix is too inaccurate, its timestamp is missing or not strictly after the
    last accepted sample, it falls inside the debounce window (too soon OR too
    close), it implies an implausible speed, or the recorder is full.

    Distance and the running area estimate are updated incrementally, so each
    accepted sample costs O(1).
    """

    def __init__(
        self,
        *,
        max_accuracy_m: float = RECORDER_MAX_ACCURACY_M,
        min_interval_s: float = RECORDER_MIN_INTERVAL_S,
        min_distance_m: float = RECORDER_MIN_DISTANCE_M,
        max_speed_kmh: float = RECORDER_MAX_SPEED_KMH,
        warn_speed_kmh: float = RECORDER_WARN_SPEED_KMH,
        max_points: int = RECORDER_MAX_POINTS,
    ) -> None:
        if max_points < 1:
            raise ValueError("max_points must be >= 1")
        if min_interval_s < 0 or min_distance_m < 0:
            raise ValueError("debounce thresholds must be non-negative")
        self.max_accuracy_m = max_accuracy_m
        self.min_interval_s = min_interval_s
        self.min_distance_m = min_distance_m
        self.max_speed_kmh = max_speed_kmh
        self.warn_speed_kmh = warn_speed_kmh
        self.max_points = max_points
        self._points: List[Coordinate] = []
        self._distance_m = 0.0
        self._edge_terms = 0.0
        self.last_rejection: Optional[RejectionReason] = None
        self.last_speed_kmh: Optional[float] = None
        self.last_speed_warning = False

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------
    def ingest(self, sample: Coordinate) -> bool:
        reason, step_m = self._check(sample)
        if reason is not None:
            self.last_rejection = reason
            LOGGER.debug(
                "Rejected sample (%.6f, %.6f): %s",
                sample.latitude,
                sample.longitude,
                reason.value,
            )
            return False

        if self._points:
            self._edge_terms += ring_edge_term(self._points[-1], sample)
        self._points.append(sample)
        self._distance_m += step_m
        self.last_rejection = None
        LOGGER.debug(
            "Recorded point %d (%.6f, %.6f), %.1fm from previous",
            len(self._points),
            sample.latitude,
            sample.longitude,
            step_m,
        )
        return True

    def _check(self, sample: Coordinate) -> Tuple[Optional[RejectionReason], float]:
        if len(self._points) >= self.max_points:
            return RejectionReason.CAPACITY, 0.0
        accuracy = sample.accuracy_m
        if accuracy is not None and (accuracy < 0 or accuracy > self.max_accuracy_m):
            return RejectionReason.LOW_ACCURACY, 0.0
        if sample.timestamp is None:
            return RejectionReason.MISSING_TIMESTAMP, 0.0
        if not self._points:
            self.last_speed_kmh = None
            self.last_speed_warning = False
            return None, 0.0

        last = self._points[-1]
        elapsed = (sample.timestamp - last.timestamp).total_seconds()
        if elapsed <= 0:
            return RejectionReason.OUT_OF_ORDER, 0.0
        if elapsed < self.min_interval_s:
            return RejectionReason.TOO_SOON, 0.0
        step_m = haversine_distance(last, sample)
        if step_m < self.min_distance_m:
            return RejectionReason.TOO_CLOSE, 0.0

        speed_kmh = step_m / elapsed * 3.6
        if speed_kmh > self.max_speed_kmh:
            LOGGER.warning(
                "Implausible speed %.1f km/h over %.1fs; dropping sample",
                speed_kmh,
                elapsed,
            )
            return RejectionReason.SPEED_JUMP, 0.0
        self.last_speed_kmh = speed_kmh
        self.last_speed_warning = speed_kmh > self.warn_speed_kmh
        if self.last_speed_warning:
            LOGGER.info("Moving fast (%.1f km/h); sample kept", speed_kmh)
        return None, step_m

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def current_path(self) -> Tuple[Coordinate, ...]:
        return tuple(self._points)

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def cumulative_distance_m(self) -> float:
        return self._distance_m

    @property
    def start(self) -> Optional[Coordinate]:
        return self._points[0] if self._points else None

    @property
    def last(self) -> Optional[Coordinate]:
        return self._points[-1] if self._points else None

    def area_estimate_m2(self) -> float:
        """Approximate area of the path closed back to its start."""

        if len(self._points) < 3:
            return 0.0
        closing = ring_edge_term(self._points[-1], self._points[0])
        return area_from_edge_terms(self._edge_terms + closing)

    def distance_to_start(self, point: Coordinate) -> Optional[float]:
        if not self._points:
            return None
        return haversine_distance(self._points[0], point)

    def is_closed(self, tolerance_m: float, min_points: int) -> bool:
        """True when the latest point is back within ``tolerance_m`` of the start."""

        if len(self._points) < max(min_points, 2):
            return False
        distance = haversine_distance(self._points[0], self._points[-1])
        return distance <= tolerance_m

    def reset(self) -> None:
        self._points.clear()
        self._distance_m = 0.0
        self._edge_terms = 0.0
        self.last_rejection = None
        self.last_speed_kmh = None
        self.last_speed_warning = False
