"""Per-source packet rate limiting with a fixed block timeout."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

RATE_WINDOW = 60.0
CLEANUP_INTERVAL = 60.0
IDLE_EVICTION = 300.0


@dataclass
class _Bucket:
    count: int
    window_start: float
    blocked_until: float | None = None


@dataclass(frozen=True)
class BlockedEntry:
    """A source currently in timeout and the clock time its block expires."""

    source: str
    blocked_until: float


class SourceRateLimiter:
    """Blocks a source for ``timeout`` seconds once it exceeds ``threshold`` packets per minute.

    When the block expires the source starts over with a fresh window.
    """

    def __init__(
        self,
        threshold: int,
        timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.timeout = timeout
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._last_cleanup: float | None = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def allow(self, source: str) -> tuple[bool, bool]:
        """Return ``(ok, just_blocked)`` for a packet from ``source``.

        ``ok`` is False when the packet should be dropped; ``just_blocked`` is
        True only for the packet that crossed the threshold.
        """
        if not source:
            return True, False
        now = self._clock()
        with self._lock:
            if self._last_cleanup is None or now - self._last_cleanup > CLEANUP_INTERVAL:
                self._cleanup(now)
                self._last_cleanup = now
            bucket = self._buckets.get(source)
            if bucket is None:
                self._buckets[source] = _Bucket(count=1, window_start=now)
                return True, False
            if bucket.blocked_until is not None:
                if now < bucket.blocked_until:
                    return False, False
                bucket.count = 1
                bucket.window_start = now
                bucket.blocked_until = None
                return True, False
            if now - bucket.window_start >= RATE_WINDOW:
                bucket.count = 1
                bucket.window_start = now
                return True, False
            bucket.count += 1
            if bucket.count > self.threshold:
                bucket.blocked_until = now + self.timeout
                return False, True
            return True, False

    def _cleanup(self, now: float) -> None:
        self._buckets = {
            src: b
            for src, b in self._buckets.items()
            if b.blocked_until is not None or now - b.window_start <= IDLE_EVICTION
        }

    def is_blocked(self, source: str) -> bool:
        """Report whether ``source`` is in a timeout right now."""
        if not source:
            return False
        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(source)
            return (
                bucket is not None
                and bucket.blocked_until is not None
                and now < bucket.blocked_until
            )

    def blocked_sources(self) -> list[BlockedEntry]:
        """Return every source currently blocked, soonest expiry first."""
        now = self._clock()
        with self._lock:
            entries = [
                BlockedEntry(source=src, blocked_until=b.blocked_until)
                for src, b in self._buckets.items()
                if b.blocked_until is not None and now < b.blocked_until
            ]
        entries.sort(key=lambda e: e.blocked_until)
        return entries