"""State, event and configuration types for claim attempts."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from .. import config as _config
from ..errors import PersistenceFailed, ValidationFailed
from ..models import Coordinate, FailureReason, RejectionReason, Territory
from ..tracking.recorder import PathRecorder


class ClaimState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {ClaimState.COMPLETED, ClaimState.FAILED, ClaimState.CANCELLED}
)


class ClaimEventKind(str, Enum):
    TRACKING_STARTED = "tracking_started"
    SAMPLE_REJECTED = "sample_rejected"
    LOOP_CLOSED = "loop_closed"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PERSISTED = "persisted"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass(frozen=True, slots=True)
class ClaimEvent:
    """Notification emitted to subscribers on every observable change."""

    kind: ClaimEventKind
    state: ClaimState
    timestamp: datetime
    territory: Optional[Territory] = None
    reason: Optional[Union[FailureReason, RejectionReason]] = None
    detail: Optional[str] = None
    sample: Optional[Coordinate] = None


@dataclass(frozen=True, slots=True)
class ClaimOutcome:
    """Result of ``finish()``.

    ``state`` is COMPLETED or FAILED. A completed outcome may still carry a
    ``persistence_error`` when the backend save did not go through.
    """

    state: ClaimState
    territory: Optional[Territory] = None
    failure: Optional[ValidationFailed] = None
    persistence_error: Optional[PersistenceFailed] = None

    @property
    def succeeded(self) -> bool:
        return self.state is ClaimState.COMPLETED

    @property
    def persisted(self) -> bool:
        return self.succeeded and self.persistence_error is None

    @property
    def reason(self) -> Optional[FailureReason]:
        return self.failure.reason if self.failure is not None else None


def _default(name: str) -> Any:
    return getattr(_config, name)


@dataclass(slots=True)
class ClaimConfig:
    """Thresholds for one claim state machine.

    Defaults mirror ``territory_claim.config``; override per instance as needed.
    """

    max_accuracy_m: float = _config.RECORDER_MAX_ACCURACY_M
    min_interval_s: float = _config.RECORDER_MIN_INTERVAL_S
    min_distance_m: float = _config.RECORDER_MIN_DISTANCE_M
    max_speed_kmh: float = _config.RECORDER_MAX_SPEED_KMH
    warn_speed_kmh: float = _config.RECORDER_WARN_SPEED_KMH
    max_points: int = _config.RECORDER_MAX_POINTS
    closure_tolerance_m: float = _config.CLAIM_CLOSURE_TOLERANCE_M
    closure_min_points: int = _config.CLAIM_CLOSURE_MIN_POINTS
    min_points: int = _config.CLAIM_MIN_POINTS
    min_area_m2: float = _config.CLAIM_MIN_AREA_M2
    min_total_distance_m: float = _config.CLAIM_MIN_TOTAL_DISTANCE_M
    self_intersection_tolerance_m: float = _config.CLAIM_SELF_INTERSECTION_TOLERANCE_M
    overlap_tolerance_m2: float = _config.CLAIM_OVERLAP_TOLERANCE_M2
    overlap_search_margin_m: float = _config.CLAIM_OVERLAP_SEARCH_MARGIN_M
    check_own_overlap: bool = _config.CLAIM_CHECK_OWN_OVERLAP

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClaimConfig":
        """Build a config from the current module constants plus overrides."""

        values = {
            "max_accuracy_m": _default("RECORDER_MAX_ACCURACY_M"),
            "min_interval_s": _default("RECORDER_MIN_INTERVAL_S"),
            "min_distance_m": _default("RECORDER_MIN_DISTANCE_M"),
            "max_speed_kmh": _default("RECORDER_MAX_SPEED_KMH"),
            "warn_speed_kmh": _default("RECORDER_WARN_SPEED_KMH"),
            "max_points": _default("RECORDER_MAX_POINTS"),
            "closure_tolerance_m": _default("CLAIM_CLOSURE_TOLERANCE_M"),
            "closure_min_points": _default("CLAIM_CLOSURE_MIN_POINTS"),
            "min_points": _default("CLAIM_MIN_POINTS"),
            "min_area_m2": _default("CLAIM_MIN_AREA_M2"),
            "min_total_distance_m": _default("CLAIM_MIN_TOTAL_DISTANCE_M"),
            "self_intersection_tolerance_m": _default(
                "CLAIM_SELF_INTERSECTION_TOLERANCE_M"
            ),
            "overlap_tolerance_m2": _default("CLAIM_OVERLAP_TOLERANCE_M2"),
            "overlap_search_margin_m": _default("CLAIM_OVERLAP_SEARCH_MARGIN_M"),
            "check_own_overlap": _default("CLAIM_CHECK_OWN_OVERLAP"),
        }
        known = {item.name for item in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown ClaimConfig fields: {', '.join(sorted(unknown))}")
        values.update(overrides)
        return cls(**values)

    def build_recorder(self) -> PathRecorder:
        return PathRecorder(
            max_accuracy_m=self.max_accuracy_m,
            min_interval_s=self.min_interval_s,
            min_distance_m=self.min_distance_m,
            max_speed_kmh=self.max_speed_kmh,
            warn_speed_kmh=self.warn_speed_kmh,
            max_points=self.max_points,
        )


__all__ = [
    "ClaimConfig",
    "ClaimEvent",
    "ClaimEventKind",
    "ClaimOutcome",
    "ClaimState",
    "TERMINAL_STATES",
]
