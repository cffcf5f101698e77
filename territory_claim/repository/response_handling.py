"""HTTP response helpers for the Supabase REST adapter."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..errors import RepositoryError, RepositoryNotFoundError

__all__ = [
    "check_response",
    "extract_error",
]


def check_response(response: requests.Response, context: str) -> None:
    """Raise the matching repository error for a non-success status."""

    status = response.status_code
    if status < 400:
        return
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status == 404:
        message = with_detail(f"{context} not found")
        logging.info(message)
        raise RepositoryNotFoundError(message)

    if status in (401, 403):
        message = with_detail(f"{context} forbidden (status {status})")
        logging.warning(message)
        raise RepositoryError(message)

    message = with_detail(f"{context} request failed (status {status})")
    logging.error(message)
    raise RepositoryError(message)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return a compact string with PostgREST error info if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts = _collect_error_parts(data)
    return " | ".join(parts) if parts else None


def _safe_json(resp: requests.Response) -> Optional[Any]:
    try:
        return resp.json()
    except ValueError as exc:
        logging.debug(
            "Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc
        )
        return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


def _collect_error_parts(data: Dict[str, Any]) -> List[str]:
    """PostgREST errors carry ``message``, ``code``, ``details`` and ``hint``."""

    parts: List[str] = []
    message = data.get("message") or data.get("error")
    if message:
        parts.append(str(message))
    code = data.get("code")
    if code:
        parts.append(f"code:{code}")
    for key in ("details", "hint"):
        value = data.get(key)
        if value:
            parts.append(str(value))
    return parts
