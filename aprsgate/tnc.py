"""TNC session helpers: addressing, KISS parameters, health tracking and the TX queue."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable

from aprsgate.bluetooth import is_rfcomm_device

log = logging.getLogger(__name__)

TNC_NONE = "none"
TNC_SERIAL = "serial"
TNC_TCP = "tcp"

TX_QUEUE_DEPTH = 64
TX_MIN_SPACING = 1.0
DEFAULT_TCP_PORT = 8001
DEFAULT_SERIAL_BAUD = 9600

HEALTH_CHECK_INTERVAL = 30.0
HEALTH_BYTES_THRESHOLD = 50
KISS_PARAM_MAX = 255


class TncError(Exception):
    """Base class for TNC transmit errors."""


class TxDisabledError(TncError):
    """Transmit is disabled in settings."""

    def __init__(self) -> None:
        super().__init__("rf: TX disabled in settings")


class TxQueueFullError(TncError):
    """The transmit queue is saturated."""

    def __init__(self) -> None:
        super().__init__("rf: TX queue full")


class NoTncError(TncError):
    """No TNC is configured."""

    def __init__(self) -> None:
        super().__init__("rf: no TNC configured")


def ensure_tx_allowed(kind: str, tx_enable: bool) -> None:
    """Raise unless a TNC is configured and transmit is enabled."""
    if kind == TNC_NONE:
        raise NoTncError()
    if not tx_enable:
        raise TxDisabledError()


def normalize_tcp_address(addr: str) -> str:
    """Return ``host:port``, adding the default KISS port 8001 when none is given."""
    if not addr:
        raise ValueError("TCP TNC selected but no host:port set")
    if ":" not in addr:
        return f"{addr}:{DEFAULT_TCP_PORT}"
    return addr


def serial_baud(device: str, baud: int) -> int:
    """Baud rate to configure: RFCOMM keeps 0 (untouched), real ports default to 9600."""
    if baud == 0 and not is_rfcomm_device(device):
        return DEFAULT_SERIAL_BAUD
    return baud


def kiss_param_value(ms: int, divisor: int) -> int | None:
    """Convert a millisecond setting to a KISS parameter byte.

    Returns None when ``ms`` is not positive (the command is not sent);
    otherwise ``ms // divisor`` clamped to 0..255.
    """
    if divisor <= 0:
        raise ValueError("divisor must be positive")
    if ms <= 0:
        return None
    return max(0, min(ms // divisor, KISS_PARAM_MAX))


class TncHealth:
    """Detects a TNC that sends bytes but no decodable frames (likely not in KISS mode).

    ``check`` is meant to be called every 30 seconds; it compares traffic
    since the previous check.
    """

    def __init__(self, bytes_threshold: int = HEALTH_BYTES_THRESHOLD) -> None:
        self.bytes_threshold = bytes_threshold
        self._bytes_in = 0
        self._frames_in = 0
        self._last_bytes = 0
        self._last_frames = 0
        self._not_kiss = False
        self._lock = threading.Lock()

    @property
    def bytes_in(self) -> int:
        with self._lock:
            return self._bytes_in

    @property
    def frames_in(self) -> int:
        with self._lock:
            return self._frames_in

    @property
    def not_kiss(self) -> bool:
        """Whether the TNC is suspected of not being in KISS mode."""
        with self._lock:
            return self._not_kiss

    def start_session(self) -> None:
        """Seed the window from the current counters and clear any stale flag."""
        with self._lock:
            self._last_bytes = self._bytes_in
            self._last_frames = self._frames_in
            self._not_kiss = False

    def record_bytes(self, count: int) -> None:
        """Count bytes read from the device."""
        if count < 0:
            raise ValueError("byte count cannot be negative")
        with self._lock:
            self._bytes_in += count

    def record_frame(self) -> None:
        """Count a decoded frame; any valid frame clears the flag."""
        with self._lock:
            self._frames_in += 1
            self._not_kiss = False

    def check(self) -> bool:
        """Evaluate traffic since the last check and return the current flag."""
        with self._lock:
            bytes_delta = self._bytes_in - self._last_bytes
            frames_delta = self._frames_in - self._last_frames
            self._last_bytes = self._bytes_in
            self._last_frames = self._frames_in
            flagged = bytes_delta >= self.bytes_threshold and frames_delta == 0
            if flagged and not self._not_kiss:
                log.warning(
                    "rf: TNC health: %d bytes with no valid AX.25 frame — "
                    "TNC may not be in KISS mode",
                    bytes_delta,
                )
            if flagged:
                self._not_kiss = True
            return self._not_kiss


class TxQueue:
    """Bounded queue of KISS frames, handed out no faster than one per ``spacing`` seconds."""

    def __init__(
        self,
        depth: int = TX_QUEUE_DEPTH,
        spacing: float = TX_MIN_SPACING,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        self.spacing = spacing
        self._queue: queue.Queue[bytes] = queue.Queue(maxsize=depth)
        self._clock = clock
        self._sleep = sleep
        self._last_tx: float | None = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._queue.qsize()

    def put(self, frame: bytes) -> None:
        """Queue a frame without blocking; raise TxQueueFullError when full."""
        try:
            self._queue.put_nowait(bytes(frame))
        except queue.Full:
            raise TxQueueFullError() from None

    def get(self, timeout: float | None = None) -> bytes | None:
        """Return the next frame, or None if none arrives within ``timeout``.

        Waits as needed so successive frames are at least ``spacing`` apart.
        """
        try:
            frame = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        with self._lock:
            if self._last_tx is not None:
                wait = self.spacing - (self._clock() - self._last_tx)
                if wait > 0:
                    self._sleep(wait)
            self._last_tx = self._clock()
        return frame