"""APRS bulletin composition, classification and display grouping."""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Sequence

BULLETIN_SEND_COOLDOWN = 300.0
MAX_BODY_LENGTH = 67
ADDRESSEE_WIDTH = 9

_COMPOSE_RE = re.compile(r"[0-9A-Z][A-Z0-9]{0,5}")
_RESERVED_CHARS = str.maketrans("", "", "{|~")
_CONTROL_CHARS = str.maketrans("", "", "\r\n\x00")

_SEVERITY_BY_PRODUCT = {
    **dict.fromkeys(("TOR", "SVR", "FFW", "TSW"), "severe"),
    **dict.fromkeys(("HUW", "TRW", "BZW", "WSW", "FLW", "HLS"), "warning"),
    **dict.fromkeys(("HUA", "FFA", "TOA", "SVA"), "watch"),
    **dict.fromkeys(("FLS", "SPS", "NPW", "WCN", "AFD"), "statement"),
}
_SEVERITY_ORDER = {"severe": 0, "warning": 1, "watch": 2, "statement": 3, "info": 4}


class BulletinSendTracker:
    """Remembers when each bulletin addressee was last sent to refuse rapid repeats."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._last_sent: dict[str, float] = {}
        self._lock = threading.Lock()

    def check_and_mark(self, addr: str) -> float:
        """Return the remaining cooldown in seconds, or 0 after recording a permitted send."""
        addr = addr.upper()
        now = self._clock()
        with self._lock:
            last = self._last_sent.get(addr)
            if last is not None:
                elapsed = now - last
                if elapsed < BULLETIN_SEND_COOLDOWN:
                    return BULLETIN_SEND_COOLDOWN - elapsed
            self._last_sent[addr] = now
            return 0.0


def _sanitize_field(text: str) -> str:
    return text.translate(_CONTROL_CHARS).strip()


def compose_bulletin(id_and_group: str, body: str) -> tuple[str, str]:
    """Validate the form fields and return ``(addressee, info)`` ready to transmit.

    The addressee is ``BLN`` plus the identifier and group, space-padded to
    nine characters. Raises ValueError on invalid input.
    """
    id_and_group = id_and_group.strip().upper()
    if not _COMPOSE_RE.fullmatch(id_and_group):
        raise ValueError(
            "identifier must be a digit (0-9) or letter (A-Z), optionally followed "
            "by 1-5 alphanumeric group chars (e.g. 1, 1ARES, AWX)"
        )
    body = body.strip()
    if not body:
        raise ValueError("body required")
    body = _sanitize_field(body).translate(_RESERVED_CHARS)[:MAX_BODY_LENGTH]
    if not body:
        raise ValueError(
            "body became empty after sanitizing — reserved chars `{` `|` `~` were stripped"
        )
    prefix = "BLN" + id_and_group
    if len(prefix) > ADDRESSEE_WIDTH:
        raise ValueError("identifier+group too long")
    addressee = prefix.ljust(ADDRESSEE_WIDTH)
    return addressee, f":{addressee}:{body}"


@dataclass
class Bulletin:
    """One classified bulletin for display."""

    source: str
    dest: str
    dest_label: str = ""
    body: str = ""
    time: datetime | None = None
    kind: str = ""
    identifier: str = ""
    group: str = ""
    office: str = ""
    product: str = ""
    severity: str = ""


@dataclass(frozen=True)
class BulletinRow:
    """A stored bulletin message as read back from the packet store."""

    source: str
    dest: str
    body: str
    time: datetime


@dataclass
class BulletinsView:
    """Bulletins split into display sections."""

    nws: list[Bulletin] = field(default_factory=list)
    sky: list[Bulletin] = field(default_factory=list)
    cwa: list[Bulletin] = field(default_factory=list)
    announces: list[Bulletin] = field(default_factory=list)
    numbered: list[Bulletin] = field(default_factory=list)
    group_list: str = ""
    nws_enabled: bool = False
    offline: bool = False
    total_rows: int = 0


def _normalize_dest(dest: str) -> str:
    return dest.rstrip(" ").upper()


def is_bulletin_addressee(dest: str) -> bool:
    """Report whether a message addressee is a broadcast (BLN, NWS, SKY, CWA-)."""
    d = _normalize_dest(dest)
    return d.startswith(("BLN", "NWS-", "NWS_", "SKY", "CWA-"))


def nws_severity(product: str) -> str:
    """Map a three-letter NWS product code to a severity bucket."""
    return _SEVERITY_BY_PRODUCT.get(product, "info")


def classify_bulletin(source: str, dest: str) -> Bulletin:
    """Classify a bulletin by its addressee; unknown forms get an empty kind."""
    d = _normalize_dest(dest)
    b = Bulletin(source=source, dest=dest, dest_label=d)
    if d.startswith("BLN") and len(d) >= 4:
        id_char = d[3]
        b.identifier = id_char
        if "0" <= id_char <= "9":
            if len(d) > 4:
                b.kind = "group"
                b.group = d[4:]
            else:
                b.kind = "numbered"
        elif "A" <= id_char <= "Z":
            b.kind = "announce"
    elif d.startswith(("NWS-", "NWS_")):
        b.kind = "nws"
        if len(d) > 4:
            b.office = d[4:]
        if len(source) >= 3:
            b.product = source[-3:].upper()
            b.severity = nws_severity(b.product)
            if d.startswith("NWS_") and b.severity == "info":
                b.severity = "statement"
        else:
            b.severity = "info"
    elif d.startswith("SKY"):
        b.kind = "sky"
        if len(d) > 3:
            b.office = d[3:]
        b.severity = "info"
    elif d.startswith("CWA-"):
        b.kind = "cwa"
        if len(d) > 4:
            b.office = d[4:]
        b.severity = "info"
    return b


def passes_group_whitelist(bulletin: Bulletin, groups: Sequence[str]) -> bool:
    """Apply the group whitelist: plain and weather bulletins always pass.

    Group bulletins pass when the list is empty or names their group.
    """
    if bulletin.kind in ("numbered", "announce", "nws", "sky", "cwa"):
        return True
    if bulletin.kind == "group":
        if not groups:
            return True
        wanted = bulletin.group.casefold()
        return any(g.strip().casefold() == wanted for g in groups)
    return False


def build_bulletins_view(
    rows: Iterable[BulletinRow],
    message_groups: Sequence[str],
    nws_subscribed: bool,
    offline: bool,
    cutoff: datetime,
) -> BulletinsView:
    """Classify, filter and sort stored bulletins into display sections."""
    rows = list(rows)
    view = BulletinsView(
        group_list=", ".join(message_groups),
        nws_enabled=nws_subscribed,
        offline=offline,
        total_rows=len(rows),
    )
    sections = {
        "nws": (view.nws, True),
        "sky": (view.sky, True),
        "cwa": (view.cwa, True),
        "announce": (view.announces, False),
        "numbered": (view.numbered, False),
        "group": (view.numbered, False),
    }
    for row in rows:
        if row.time < cutoff:
            continue
        b = classify_bulletin(row.source, row.dest)
        b.body = row.body
        b.time = row.time
        if not passes_group_whitelist(b, message_groups):
            continue
        target = sections.get(b.kind)
        if target is None:
            continue
        section, needs_subscription = target
        if needs_subscription and not nws_subscribed:
            continue
        section.append(b)

    for section in (view.sky, view.cwa, view.announces, view.numbered):
        section.sort(key=lambda item: item.time, reverse=True)
    # Newest first within each severity bucket, buckets most severe first.
    view.nws.sort(key=lambda item: item.time, reverse=True)
    view.nws.sort(key=lambda item: _SEVERITY_ORDER.get(item.severity, 0))
    return view