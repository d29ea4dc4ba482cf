"""Raw-mode setup for serial and RFCOMM tty devices."""

from __future__ import annotations

import functools
import operator
import termios
from typing import Protocol, Union


class _HasFileno(Protocol):
    def fileno(self) -> int: ...


FdLike = Union[int, _HasFileno]

_SUPPORTED_BAUDS = (1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200, 230400)


def _mask(*names: str) -> int:
    """OR together the termios flags that exist on this platform."""
    return functools.reduce(operator.or_, (getattr(termios, n, 0) for n in names), 0)


_IFLAG_CLEAR = _mask(
    "ICRNL", "IXON", "IXOFF", "IGNCR", "INLCR", "ISTRIP",
    "IXANY", "IMAXBEL", "BRKINT", "PARMRK", "INPCK",
)
_OFLAG_CLEAR = _mask("OPOST", "ONLCR", "OCRNL", "ONOCR", "ONLRET")
_LFLAG_CLEAR = _mask(
    "ECHO", "ECHOE", "ECHOK", "ECHONL", "ICANON", "ISIG", "IEXTEN", "TOSTOP",
)
_CFLAG_CLEAR = _mask("CSIZE", "PARENB")
_CFLAG_SET = _mask("CS8", "CLOCAL", "CREAD")
_CBAUD = _mask("CBAUD")


def baud_constant(baud: int) -> int | None:
    """Return the termios speed constant for ``baud``, or None if unsupported."""
    if baud not in _SUPPORTED_BAUDS:
        return None
    return getattr(termios, f"B{baud}", None)


def set_raw(fd: FdLike, baud: int) -> None:
    """Put a tty into raw 8N1 mode, no echo, no canonical input, no output processing.

    A ``baud`` of 0 or an unsupported rate leaves the current speed untouched,
    which is correct for RFCOMM devices. Raises ``termios.error`` if the
    descriptor is not a terminal.
    """
    if not isinstance(fd, int):
        fd = fd.fileno()
    iflag, oflag, cflag, lflag, ispeed, ospeed, cc = termios.tcgetattr(fd)
    iflag &= ~_IFLAG_CLEAR
    oflag &= ~_OFLAG_CLEAR
    lflag &= ~_LFLAG_CLEAR
    cflag &= ~_CFLAG_CLEAR
    cflag |= _CFLAG_SET
    speed = baud_constant(baud)
    if speed is not None:
        cflag &= ~_CBAUD
        cflag |= speed
        ispeed = speed
        ospeed = speed
    cc = list(cc)
    cc[termios.VMIN] = 1
    cc[termios.VTIME] = 0
    termios.tcsetattr(fd, termios.TCSANOW, [iflag, oflag, cflag, lflag, ispeed, ospeed, cc])