"""Claim attempt lifecycle, validation and collision checks."""

from .collision import (
    CollisionResult,
    CollisionType,
    WarningLevel,
    assess_path,
    check_start_position,
)
from .models import (
    ClaimConfig,
    ClaimEvent,
    ClaimEventKind,
    ClaimOutcome,
    ClaimState,
)
from .state_machine import ClaimStateMachine
from .validation import ClaimValidator, build_boundary

__all__ = [
    "ClaimConfig",
    "ClaimEvent",
    "ClaimEventKind",
    "ClaimOutcome",
    "ClaimState",
    "ClaimStateMachine",
    "ClaimValidator",
    "CollisionResult",
    "CollisionType",
    "WarningLevel",
    "assess_path",
    "build_boundary",
    "check_start_position",
]
