"""Queue of outbound APRS messages awaiting acknowledgement."""

from __future__ import annotations

import threading
from dataclasses import dataclass

RETRY_MAX_ATTEMPTS = 5
RETRY_INTERVAL = 30.0
RETRY_SWEEP_INTERVAL = 5.0


@dataclass
class RetryEntry:
    """One outbound message awaiting an ack.

    ``attempts`` counts transmissions so far, the original send included.
    """

    id: int
    source: str
    dest: str
    msg_id: str
    body: str
    via_rf: bool = False
    via_is: bool = False
    attempts: int = 1
    next_retry: float = 0.0


class RetryQueue:
    """In-memory pool of messages to retransmit until acked or exhausted."""

    def __init__(self) -> None:
        self._entries: dict[int, RetryEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add(self, entry: RetryEntry) -> None:
        """Enrol an entry, replacing any with the same id."""
        with self._lock:
            self._entries[entry.id] = entry

    def remove(self, msg_id: int) -> RetryEntry | None:
        """Drop and return the entry with this id, or None if absent."""
        with self._lock:
            return self._entries.pop(msg_id, None)

    def due(self, now: float) -> list[RetryEntry]:
        """Return entries whose next retry is at or before ``now``, earliest first."""
        with self._lock:
            ready = [e for e in self._entries.values() if e.next_retry <= now]
        ready.sort(key=lambda e: e.next_retry)
        return ready

    def has(self, msg_id: int) -> bool:
        """Report whether an entry with this id is still queued."""
        with self._lock:
            return msg_id in self._entries

    def record_attempt(self, entry: RetryEntry, now: float) -> bool:
        """Count one more transmission of ``entry``.

        Returns True when the attempts are exhausted and the entry has been
        removed; otherwise schedules the next retry and returns False.
        """
        with self._lock:
            entry.attempts += 1
            if entry.attempts >= RETRY_MAX_ATTEMPTS:
                self._entries.pop(entry.id, None)
                return True
            entry.next_retry = now + RETRY_INTERVAL
            return False