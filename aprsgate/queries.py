"""General APRS query recognition and iGate capability replies."""

from __future__ import annotations

import random
from enum import Enum

MAX_RESPONSE_DELAY_MS = 30000


class QueryKind(Enum):
    """A general query this iGate answers."""

    IGATE = "?IGATE?"
    APRS = "?APRS?"


def classify_query(info: bytes | str) -> QueryKind | None:
    """Return the general query carried in an info field, or None."""
    text = info.decode("latin-1") if isinstance(info, bytes) else info
    text = text.rstrip("\r\n ")
    if not text.startswith("?"):
        return None
    try:
        return QueryKind(text.upper())
    except ValueError:
        return None


def igate_capabilities_info(msg_count: int, loc_count: int) -> bytes:
    """Build the ``<IGATE,MSG_CNT=n,LOC_CNT=n`` capabilities info field.

    A negative station count is reported as zero.
    """
    if msg_count < 0:
        raise ValueError("message count cannot be negative")
    loc_count = max(loc_count, 0)
    return f"<IGATE,MSG_CNT={msg_count},LOC_CNT={loc_count}".encode("ascii")


def response_delay() -> float:
    """Random delay in seconds (0 to under 30) before answering a query."""
    return random.randrange(MAX_RESPONSE_DELAY_MS) / 1000.0