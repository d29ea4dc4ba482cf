"""Time-windowed duplicate-packet suppression."""

from __future__ import annotations

import hashlib
import threading
import time
from typing import Callable

_GC_MIN_TRIGGER = 512


class DupeTable:
    """Set of recently seen packet hashes; anything seen within ``window`` seconds is a duplicate."""

    def __init__(self, window: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.window = window
        self._clock = clock
        self._seen: dict[bytes, float] = {}
        self._last_gc_size = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def check_and_mark(self, key: bytes) -> bool:
        """Return True if ``key`` was seen within the window; otherwise record it and return False."""
        digest = hashlib.sha1(key).digest()
        now = self._clock()
        with self._lock:
            seen_at = self._seen.get(digest)
            if seen_at is not None and now - seen_at < self.window:
                return True
            self._seen[digest] = now
            # Sweep only once the table has grown well past its last swept size.
            trigger = max(self._last_gc_size * 2, _GC_MIN_TRIGGER)
            if len(self._seen) > trigger:
                self._seen = {
                    h: t for h, t in self._seen.items() if now - t <= self.window
                }
                self._last_gc_size = len(self._seen)
            return False