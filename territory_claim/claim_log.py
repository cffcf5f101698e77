"""Bounded in-memory log of claim diagnostics.

Attach :class:`ClaimLogBuffer` to the root logger (or to any other logger) to
keep the most recent records for an in-app debug console::

    buffer = ClaimLogBuffer.install()
    ...
    print(buffer.export())
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
import logging
import threading
from typing import Deque, List, Optional

from .config import CLAIM_LOG_MAX_ENTRIES

_EXPORT_FORMAT = "%Y-%m-%d %H:%M:%S"
_SHORT_FORMAT = "%H:%M:%S"


@dataclass(frozen=True, slots=True)
class ClaimLogEntry:
    timestamp: datetime
    level: str
    logger: str
    message: str

    def formatted(self) -> str:
        return f"[{self.timestamp.strftime(_SHORT_FORMAT)}] [{self.level}] {self.message}"

    def formatted_for_export(self) -> str:
        return (
            f"[{self.timestamp.strftime(_EXPORT_FORMAT)}] [{self.level}] "
            f"{self.logger}: {self.message}"
        )


class ClaimLogBuffer(logging.Handler):
    """Logging handler that keeps the last ``max_entries`` records."""

    def __init__(
        self, max_entries: int = CLAIM_LOG_MAX_ENTRIES, level: int = logging.INFO
    ) -> None:
        super().__init__(level=level)
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: Deque[ClaimLogEntry] = deque(maxlen=max_entries)
        self._entries_lock = threading.Lock()

    @classmethod
    def install(
        cls,
        logger: Optional[logging.Logger] = None,
        max_entries: int = CLAIM_LOG_MAX_ENTRIES,
        level: int = logging.INFO,
    ) -> "ClaimLogBuffer":
        """Create a buffer and attach it to ``logger`` (default: the root logger)."""

        handler = cls(max_entries=max_entries, level=level)
        target = logger or logging.getLogger()
        target.addHandler(handler)
        return handler

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = ClaimLogEntry(
                timestamp=datetime.fromtimestamp(record.created),
                level=record.levelname,
                logger=record.name,
                message=record.getMessage(),
            )
        except Exception:  # pragma: no cover - logging must never raise
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.append(entry)

    @property
    def entries(self) -> List[ClaimLogEntry]:
        with self._entries_lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    def text(self) -> str:
        return "\n".join(entry.formatted() for entry in self.entries)

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()

    def export(self, now: Optional[datetime] = None) -> str:
        """Return a plain-text report of the buffered records."""

        entries = self.entries
        generated = (now or datetime.now()).strftime(_EXPORT_FORMAT)
        lines = [
            "=== Territory claim log ===",
            f"Exported: {generated}",
            f"Entries: {len(entries)}",
            "",
        ]
        lines.extend(entry.formatted_for_export() for entry in entries)
        return "\n".join(lines) + "\n"


__all__ = ["ClaimLogBuffer", "ClaimLogEntry"]
