"""Territory claim engine: GPS loop recording, validation and POI proximity."""

from .claims import ClaimConfig, ClaimEvent, ClaimEventKind, ClaimOutcome, ClaimState
from .claims import ClaimStateMachine
from .errors import (
    AttemptAlreadyActive,
    DegenerateGeometryError,
    InvalidTransition,
    PersistenceFailed,
    TerritoryClaimError,
    ValidationFailed,
)
from .models import (
    POI,
    Coordinate,
    FailureReason,
    POICategory,
    ProximityEvent,
    RejectionReason,
    Territory,
)
from .tracking import PathRecorder

__all__ = [
    "AttemptAlreadyActive",
    "ClaimConfig",
    "ClaimEvent",
    "ClaimEventKind",
    "ClaimOutcome",
    "ClaimState",
    "ClaimStateMachine",
    "Coordinate",
    "DegenerateGeometryError",
    "FailureReason",
    "InvalidTransition",
    "POI",
    "POICategory",
    "PathRecorder",
    "PersistenceFailed",
    "ProximityEvent",
    "RejectionReason",
    "Territory",
    "TerritoryClaimError",
    "ValidationFailed",
]
