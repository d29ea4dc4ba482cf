"""Ring buffer of gate-drop reasons for the diagnostics page."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

DROP_RING_CAPACITY = 500
INFO_DISPLAY_MAX = 80


class Origin(Enum):
    """Where a frame came from."""

    RF = "RF"
    IS = "IS"
    TX = "TX"


@dataclass(frozen=True)
class DropEntry:
    """One packet the gate decided not to pass on."""

    time: datetime
    origin: str
    source: str
    dest: str
    info: str
    reason: str


class DropRing:
    """Bounded, thread-safe record of recent drops."""

    def __init__(self, capacity: int = DROP_RING_CAPACITY) -> None:
        self._entries: deque[DropEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add(self, entry: DropEntry) -> None:
        """Append an entry, evicting the oldest when full."""
        with self._lock:
            self._entries.append(entry)

    def snapshot(self) -> list[DropEntry]:
        """Return the entries newest first."""
        with self._lock:
            return list(reversed(self._entries))


def origin_label(origin: object) -> str:
    """Short display label for a frame origin; ``??`` when unknown."""
    if isinstance(origin, Origin):
        return origin.value
    return "??"


def sanitize_info(info: bytes) -> str:
    """Make an info field safe for display: no control chars, trimmed, length-capped."""
    if not info:
        return ""
    cleaned = bytes(b" "[0] if c < 0x20 or c == 0x7F else c for c in info)
    cleaned = cleaned.strip(b" \t\n\r\v\f")
    if len(cleaned) > INFO_DISPLAY_MAX:
        return cleaned[: INFO_DISPLAY_MAX - 1].decode("utf-8", errors="replace") + "…"
    return cleaned.decode("utf-8", errors="replace")