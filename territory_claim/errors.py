"""Central error types used across the engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .models import FailureReason, RejectionReason, Territory


class TerritoryClaimError(RuntimeError):
    """Base error for the territory claim engine."""


class DegenerateGeometryError(TerritoryClaimError, ValueError):
    """Raised when a polygon is required but fewer than 3 points are supplied."""


class SampleRejected(TerritoryClaimError):
    """Describes a dropped location sample.

    The recorder never raises this; hosts may use it to surface rejections.
    """

    def __init__(self, reason: "RejectionReason", message: str | None = None):
        self.reason = reason
        super().__init__(message or f"Sample rejected: {reason.value}")


class AttemptAlreadyActive(TerritoryClaimError):
    """Raised when ``start()`` is called while the machine is not idle."""


class InvalidTransition(TerritoryClaimError):
    """Raised when an operation is not allowed in the current claim state."""


class ValidationFailed(TerritoryClaimError):
    """Raised or reported when a finished path cannot become a territory."""

    def __init__(self, reason: "FailureReason", detail: str | None = None):
        self.reason = reason
        self.detail = detail
        message = f"Validation failed: {reason.value}"
        if detail:
            message = f"{message} | {detail}"
        super().__init__(message)


class PersistenceFailed(TerritoryClaimError):
    """Raised when a validated territory could not be stored.

    The territory is kept on the error so the save can be retried without
    walking the path again.
    """

    def __init__(
        self,
        territory: "Territory",
        cause: Optional[BaseException] = None,
    ):
        self.territory = territory
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to persist territory {territory.id}{detail}")


class RepositoryError(TerritoryClaimError):
    """Base error for backend repository failures."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when a territory does not exist in the backend."""


__all__ = [
    "TerritoryClaimError",
    "DegenerateGeometryError",
    "SampleRejected",
    "AttemptAlreadyActive",
    "InvalidTransition",
    "ValidationFailed",
    "PersistenceFailed",
    "RepositoryError",
    "RepositoryNotFoundError",
]
