"""APRS-IS passcode computation and verification."""

from __future__ import annotations

_HASH_SEED = 0x73E2
_RECEIVE_ONLY = "-1"


def aprs_is_passcode(call: str) -> int:
    """Return the 15-bit APRS-IS passcode for a callsign (SSID ignored).

    Returns 0 for an empty callsign.
    """
    base = call.strip().upper().partition("-")[0]
    if not base:
        return 0
    digest = _HASH_SEED
    data = base.encode("latin-1", errors="replace")
    for pos in range(0, len(data), 2):
        pair = data[pos:pos + 2]
        digest ^= pair[0] << 8
        if len(pair) > 1:
            digest ^= pair[1]
    return digest & 0x7FFF


def aprs_is_passcode_matches(callsign: str, passcode: str) -> bool:
    """Report whether ``passcode`` is valid for ``callsign``.

    The receive-only sentinel ``-1`` always matches; an empty passcode never does.
    """
    passcode = passcode.strip()
    if not passcode:
        return False
    if passcode == _RECEIVE_ONLY:
        return True
    return passcode == str(aprs_is_passcode(callsign))