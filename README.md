# aprsgate

Building blocks for an APRS iGate / digipeater. The package is a library:
each module covers one concern, and you wire them together in your own
process. It has no dependencies beyond the standard library; the serial
and Bluetooth helpers need a POSIX system (`termios`, `select.poll`), and
the Bluetooth supervisor runs the `hciconfig` and `rfcomm` commands.

## Install

    pip install .
    pip install ".[test]"   # to run the test suite

## What's inside

- `aprsgate.passcode` — `aprs_is_passcode(call)` computes the 15-bit
  APRS-IS passcode for a callsign (SSID stripped, case-insensitive, 0 for
  an empty callsign); `aprs_is_passcode_matches(callsign, passcode)`
  checks one, accepts the `-1` receive-only sentinel and rejects an empty
  passcode.
- `aprsgate.dupe` — `DupeTable(window)`, a time-windowed duplicate filter:
  `check_and_mark(key)` returns `True` if the bytes were seen within the
  window, otherwise records them and returns `False`.
- `aprsgate.logbuf` — `LogBuffer(capacity=200)`, a file-like sink that
  keeps the most recent `LogLine`s (`time`, `message`). `write` stores one
  entry per non-empty line and strips a leading `YYYY/MM/DD HH:MM:SS `
  stamp; `snapshot()` returns lines oldest first, `recent(n)` newest
  first, and `tee(other)` returns a writer that writes to both.
- `aprsgate.diagnostics` — `DropRing` (500 entries by default) of
  `DropEntry` records explaining why packets were not gated;
  `snapshot()` returns newest first. `Origin` enumerates `RF`, `IS` and
  `TX`; `origin_label` turns one into its label (`??` otherwise), and
  `sanitize_info` makes an info field displayable (control characters to
  spaces, trimmed, capped at 80 characters with an ellipsis).
- `aprsgate.ratelimit` — `LoginLimiter` locks an IP out for 10 minutes
  after 5 failed logins within a minute (`allow`, `fail`, `success`);
  `client_ip(remote_addr, forwarded_for)` honours the leftmost
  `X-Forwarded-For` entry only when the peer is loopback.
- `aprsgate.source_limit` — `SourceRateLimiter(threshold, timeout)` blocks
  a source for `timeout` seconds once it sends more than `threshold`
  packets in a minute. `allow(source)` returns `(ok, just_blocked)`;
  `is_blocked` and `blocked_sources()` (a list of `BlockedEntry`, soonest
  expiry first) report blocks.
- `aprsgate.queries` — `classify_query` recognises `?IGATE?` and `?APRS?`
  (`QueryKind`), `igate_capabilities_info` builds the
  `<IGATE,MSG_CNT=n,LOC_CNT=n` reply, and `response_delay()` picks a
  random delay under 30 seconds.
- `aprsgate.bulletins` — `compose_bulletin(id_and_group, body)` validates
  and builds the padded `BLN…` addressee and info field;
  `is_bulletin_addressee`, `classify_bulletin` (giving a `Bulletin`),
  `nws_severity` and `passes_group_whitelist` classify received ones;
  `build_bulletins_view` sorts `BulletinRow`s into a `BulletinsView`
  (NWS by severity then newest first, other sections newest first).
  `BulletinSendTracker` enforces a 5-minute cooldown per addressee.
- `aprsgate.retry` — `RetryQueue` of outbound `RetryEntry` messages
  awaiting an ack: `add`, `remove`, `has`, `due(now)` (earliest first) and
  `record_attempt(entry, now)`, which drops an entry after 5 attempts and
  otherwise schedules the next retry 30 seconds later.
- `aprsgate.tty` — `set_raw(fd, baud)` puts a tty into raw 8N1 mode;
  `baud_constant(baud)` maps a supported rate to its `termios` constant.
  A baud of 0 leaves the speed untouched.
- `aprsgate.serialconn` — `SerialConn` makes reads on a tty descriptor
  cancellable: setting its `stop` event wakes a blocked `read` within
  about 200 ms (`ConnectionAbortedError`); hang-up returns `b""`. Usable
  as a context manager.
- `aprsgate.bluetooth` — `RfcommSupervisor.reconcile(kind, device,
  address, channel)` starts, restarts or stops a worker that keeps
  `rfcomm connect` running with backoff; `stop()` tears it down. Helpers:
  `is_rfcomm_device`, `is_bt_address`, `rfcomm_index`, `wait_for_device`
  and `disable_bt_sniff`.
- `aprsgate.tnc` — `TxQueue` (64 frames, handed out at least one second
  apart; `put` raises `TxQueueFullError` when full), `TncHealth` to spot a
  TNC that sends bytes but no frames, `ensure_tx_allowed` (raises
  `NoTncError` / `TxDisabledError`), `normalize_tcp_address` (default port
  8001), `serial_baud` (9600 for real ports, 0 kept for RFCOMM) and
  `kiss_param_value`.

## Example

```python
from aprsgate.passcode import aprs_is_passcode
from aprsgate.bulletins import compose_bulletin

print(aprs_is_passcode("N0CALL-10"))          # 13023
addressee, info = compose_bulletin("1ares", "Net tonight at 8pm")
print(repr(addressee), info)                   # 'BLN1ARES ' :BLN1ARES :Net tonight at 8pm
```

Functions that reject input raise `ValueError` with a readable message.

## What it does not do

There is no command, web interface or long-running service here, and no
storage: state lives in memory. The package does not encode or decode
AX.25 or KISS frames, does not connect to APRS-IS, and does not open
serial ports or TCP links itself — the TNC helpers cover the pieces
around such a session, and you supply the connection loop.

## Tests

    pytest