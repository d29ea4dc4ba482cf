"""Cancellable reads on a tty-class file descriptor."""

from __future__ import annotations

import os
import select
import threading
from typing import IO, Union

POLL_INTERVAL_MS = 200

_HANGUP = select.POLLHUP | select.POLLERR

FileOrFd = Union[int, IO[bytes]]


class SerialConn:
    """Wraps a serial device so a blocked read wakes up within ~200 ms of ``stop`` being set.

    The descriptor is switched to non-blocking mode and polled with a short
    timeout. The connection owns the descriptor and closes it on ``close``.
    """

    def __init__(self, file: FileOrFd, stop: threading.Event | None = None) -> None:
        self._file = None if isinstance(file, int) else file
        self._fd = file if isinstance(file, int) else file.fileno()
        self.stop = stop if stop is not None else threading.Event()
        self._closed = False
        self._lock = threading.Lock()
        os.set_blocking(self._fd, False)

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._fd

    def read(self, size: int = 4096) -> bytes:
        """Read up to ``size`` bytes, waiting until data arrives.

        Returns ``b""`` at end of file or hang-up. Raises
        ConnectionAbortedError once ``stop`` is set.
        """
        poller = select.poll()
        poller.register(self._fd, select.POLLIN | _HANGUP)
        while True:
            if self.stop.is_set():
                raise ConnectionAbortedError("serial read cancelled")
            events = poller.poll(POLL_INTERVAL_MS)
            if not events:
                continue
            revents = events[0][1]
            if revents & _HANGUP:
                return b""
            if not revents & select.POLLIN:
                continue
            try:
                return os.read(self._fd, size)
            except BlockingIOError:
                continue

    def write(self, data: bytes) -> int:
        """Write all of ``data`` and return its length."""
        view = memoryview(data)
        poller: select.poll | None = None
        while view:
            try:
                written = os.write(self._fd, view)
            except BlockingIOError:
                if poller is None:
                    poller = select.poll()
                    poller.register(self._fd, select.POLLOUT | _HANGUP)
                poller.poll(POLL_INTERVAL_MS)
                continue
            view = view[written:]
        return len(data)

    def close(self) -> None:
        """Close the descriptor; further calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._file is not None:
            self._file.close()
        else:
            os.close(self._fd)

    def __enter__(self) -> "SerialConn":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()