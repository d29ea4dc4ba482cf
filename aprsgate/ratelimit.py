"""Per-IP login attempt limiting and client address extraction."""

from __future__ import annotations

import ipaddress
import threading
import time
from dataclasses import dataclass
from typing import Callable

MAX_FAILS_PER_WINDOW = 5
FAIL_WINDOW = 60.0
LOCKOUT_DURATION = 600.0


@dataclass
class _Entry:
    fails: int
    first_at: float
    locked_at: float | None = None


class LoginLimiter:
    """Counts failed logins per IP and locks an IP out after too many."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def allow(self, ip: str) -> bool:
        """Return True if ``ip`` may attempt a login now."""
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None:
                return True
            if entry.locked_at is not None:
                if self._clock() - entry.locked_at < LOCKOUT_DURATION:
                    return False
                del self._entries[ip]
            return True

    def fail(self, ip: str) -> None:
        """Record a failed attempt, locking the IP once the threshold is reached."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None or now - entry.first_at > FAIL_WINDOW:
                self._entries[ip] = _Entry(fails=1, first_at=now)
                return
            entry.fails += 1
            if entry.fails >= MAX_FAILS_PER_WINDOW:
                entry.locked_at = now

    def success(self, ip: str) -> None:
        """Clear the failure record for ``ip``."""
        with self._lock:
            self._entries.pop(ip, None)


def _split_host_port(addr: str) -> tuple[str, str]:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or addr[end + 1:end + 2] != ":":
            raise ValueError(f"missing port in address {addr!r}")
        return addr[1:end], addr[end + 2:]
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    if ":" in host:
        raise ValueError(f"too many colons in address {addr!r}")
    return host, port


def _is_loopback(host: str) -> bool:
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def client_ip(remote_addr: str, forwarded_for: str | None = None) -> str:
    """Return the client IP, trusting X-Forwarded-For only from a loopback peer.

    The leftmost forwarded entry is the original client.
    """
    try:
        host, _ = _split_host_port(remote_addr)
    except ValueError:
        return remote_addr
    if forwarded_for and _is_loopback(host):
        return forwarded_for.split(",", 1)[0].strip()
    return host