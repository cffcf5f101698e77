"""Territory repository backed by a Supabase (PostgREST) table."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import (
    REQUEST_TIMEOUT,
    SUPABASE_KEY,
    SUPABASE_TERRITORY_TABLE,
    SUPABASE_URL,
)
from ..errors import DegenerateGeometryError, RepositoryError, RepositoryNotFoundError
from ..geo.wkt import bbox_around
from ..models import Coordinate, Territory
from .response_handling import check_response
from .session import create_session

LOGGER = logging.getLogger(__name__)


class SupabaseTerritoryRepository:
    """CRUD over the ``territories`` table through the PostgREST API.

    Nearby queries filter on the stored bounding box columns and only ever
    return rows with ``is_active = true``. Deletes are soft: the row is
    patched to ``is_active = false``.
    """

    def __init__(
        self,
        *,
        base_url: str = SUPABASE_URL,
        api_key: str = SUPABASE_KEY,
        table: str = SUPABASE_TERRITORY_TABLE,
        session: requests.Session | None = None,
        timeout: int = REQUEST_TIMEOUT,
    ) -> None:
        if not base_url:
            raise RepositoryError("SUPABASE_URL is not configured")
        if session is None and not api_key:
            raise RepositoryError("SUPABASE_KEY is not configured")
        self._endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._session = session or create_session(api_key)
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def find_active_territories(
        self, near: Coordinate, radius_m: float
    ) -> List[Territory]:
        min_lat, max_lat, min_lon, max_lon = bbox_around(near, radius_m)
        params = [
            ("select", "*"),
            ("is_active", "eq.true"),
            ("bbox_max_lat", f"gte.{min_lat}"),
            ("bbox_min_lat", f"lte.{max_lat}"),
            ("bbox_max_lon", f"gte.{min_lon}"),
            ("bbox_min_lon", f"lte.{max_lon}"),
        ]
        rows = self._request("GET", "find active territories", params=params)
        return self._parse_rows(rows)

    def save(self, territory: Territory) -> Territory:
        """Upsert on ``id`` so a retry after a lost reply merges into the stored row."""

        rows = self._request(
            "POST",
            f"save territory {territory.id}",
            params=[("on_conflict", "id")],
            json=territory.to_payload(),
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        stored = self._parse_rows(rows)
        LOGGER.info(
            "Uploaded territory %s (%.0f m2, %d points)",
            territory.id,
            territory.area_m2,
            territory.point_count,
        )
        return stored[0] if stored else territory

    def delete(self, territory_id: str) -> None:
        rows = self._request(
            "PATCH",
            f"delete territory {territory_id}",
            params=[("id", f"eq.{territory_id}")],
            json={"is_active": False},
            headers={"Prefer": "return=representation"},
        )
        if isinstance(rows, list) and not rows:
            raise RepositoryNotFoundError(f"Territory {territory_id} not found")
        LOGGER.info("Deactivated territory %s", territory_id)

    def list_for_owner(self, owner_id: str) -> List[Territory]:
        params = [
            ("select", "*"),
            ("user_id", f"eq.{owner_id}"),
            ("is_active", "eq.true"),
            ("order", "created_at.desc"),
        ]
        rows = self._request("GET", f"list territories for {owner_id}", params=params)
        return self._parse_rows(rows)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        context: str,
        *,
        params: Optional[List[tuple]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        try:
            response = self._session.request(
                method,
                self._endpoint,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            message = f"{context} network error: {exc.__class__.__name__}"
            LOGGER.error(message)
            raise RepositoryError(message) from exc

        check_response(response, context)
        if response.status_code == 204 or not response.content:
            return []
        try:
            return response.json()
        except ValueError as exc:
            raise RepositoryError(f"{context} returned non-JSON body") from exc

    def _parse_rows(self, rows: Any) -> List[Territory]:
        if not isinstance(rows, list):
            raise RepositoryError(f"Unexpected response payload: {type(rows).__name__}")
        territories: List[Territory] = []
        for row in rows:
            try:
                territories.append(Territory.from_payload(row))
            except (DegenerateGeometryError, KeyError, TypeError, ValueError) as exc:
                LOGGER.warning(
                    "Skipping malformed territory row id=%s: %s",
                    row.get("id") if isinstance(row, dict) else "?",
                    exc,
                )
        return territories


__all__ = ["SupabaseTerritoryRepository"]
