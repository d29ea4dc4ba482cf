"""In-memory ring buffer of recent log lines."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

DEFAULT_CAPACITY = 200


class _Writer(Protocol):
    def write(self, data: str) -> object: ...


@dataclass(frozen=True)
class LogLine:
    """One timestamped log entry."""

    time: datetime
    message: str


def _strip_log_timestamp(raw: str) -> str:
    """Drop a leading ``YYYY/MM/DD HH:MM:SS `` prefix if present."""
    if (
        len(raw) > 20
        and raw[4] == "/"
        and raw[7] == "/"
        and raw[10] == " "
        and raw[13] == ":"
        and raw[16] == ":"
    ):
        return raw[19:].strip()
    return raw


class _Tee:
    """Writer that forwards each write to two targets."""

    def __init__(self, first: _Writer, second: "LogBuffer") -> None:
        self._first = first
        self._second = second

    def write(self, data: str) -> int:
        self._first.write(data)
        return self._second.write(data)

    def flush(self) -> None:
        flush = getattr(self._first, "flush", None)
        if flush is not None:
            flush()


class LogBuffer:
    """File-like sink that keeps the most recent log lines."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            capacity = DEFAULT_CAPACITY
        self.capacity = capacity
        self._lines: deque[LogLine] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def write(self, data: str | bytes) -> int:
        """Store each non-empty line of ``data``; return the length written."""
        text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
        for raw in text.rstrip("\n").split("\n"):
            if not raw:
                continue
            line = LogLine(time=datetime.now(), message=_strip_log_timestamp(raw))
            with self._lock:
                self._lines.append(line)
        return len(data)

    def snapshot(self) -> list[LogLine]:
        """Return the buffered lines, oldest first."""
        with self._lock:
            return list(self._lines)

    def recent(self, n: int) -> list[LogLine]:
        """Return up to ``n`` most recent lines, newest first."""
        lines = self.snapshot()
        n = max(0, min(n, len(lines)))
        return lines[::-1][:n]

    def tee(self, other: _Writer) -> _Tee:
        """Return a writer that writes to ``other`` and to this buffer."""
        return _Tee(other, self)