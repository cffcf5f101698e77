"""Boundary contract between the claim engine and territory storage."""

from __future__ import annotations

from typing import List, Protocol, Sequence

from ..models import Coordinate, Territory


class TerritoryRepository(Protocol):
    """Storage for persisted territories.

    Implementations raise :class:`~territory_claim.errors.RepositoryError`
    (or a subclass) on failure; the claim engine treats any exception from
    ``save`` as a retryable persistence failure.
    """

    def find_active_territories(
        self, near: Coordinate, radius_m: float
    ) -> Sequence[Territory]:
        """Return active territories whose bounding box meets the search circle's.

        Results may include territories slightly outside ``radius_m``; callers
        refine with exact geometry.
        """

    def save(self, territory: Territory) -> Territory:
        """Store ``territory`` and return the stored version."""

    def delete(self, territory_id: str) -> None:
        """Deactivate a territory so it no longer blocks new claims."""

    def list_for_owner(self, owner_id: str) -> List[Territory]:
        """Return the owner's active territories, newest first."""


__all__ = ["TerritoryRepository"]
