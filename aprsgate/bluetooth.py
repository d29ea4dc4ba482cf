"""Keeps an ``rfcomm connect`` binding alive for a Bluetooth serial TNC."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
import time
from typing import Callable, Protocol, Sequence

log = logging.getLogger(__name__)

TNC_SERIAL = "serial"
MAX_BACKOFF = 15.0

_RFCOMM_DEV_RE = re.compile(r"/dev/rfcomm(\d+)")
_BT_ADDR_RE = re.compile(r"[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}")
_DEVICE_POLL = 0.2
_PROCESS_POLL = 0.2


class _Process(Protocol):
    def wait(self, timeout: float | None = None) -> int: ...
    def terminate(self) -> None: ...
    def kill(self) -> None: ...


def is_rfcomm_device(path: str) -> bool:
    """Report whether ``path`` names an RFCOMM tty such as ``/dev/rfcomm0``."""
    return _RFCOMM_DEV_RE.fullmatch(path) is not None


def is_bt_address(addr: str) -> bool:
    """Report whether ``addr`` is a colon-separated Bluetooth MAC address."""
    return _BT_ADDR_RE.fullmatch(addr) is not None


def rfcomm_index(path: str) -> int:
    """Return the RFCOMM slot number of a device path; ValueError if it is not one."""
    match = _RFCOMM_DEV_RE.fullmatch(path)
    if match is None:
        raise ValueError(f"not an rfcomm device: {path!r}")
    return int(match.group(1))


def wait_for_device(path: str, timeout: float, stop: threading.Event | None = None) -> None:
    """Block until ``path`` exists.

    Raises TimeoutError after ``timeout`` seconds and InterruptedError if
    ``stop`` is set first.
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if os.path.exists(path):
            return
        if stop is not None:
            if stop.wait(_DEVICE_POLL):
                raise InterruptedError(f"waiting for {path}: cancelled")
        else:
            time.sleep(_DEVICE_POLL)
    raise TimeoutError(f"waiting for {path}: timeout")


def disable_bt_sniff() -> bool:
    """Clear SNIFF from hci0's default link policy; best effort, returns success."""
    try:
        subprocess.run(
            ["hciconfig", "hci0", "lp", "rswitch,hold"],
            capture_output=True,
            text=True,
            timeout=3,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        output = ((exc.stdout or "") + (exc.stderr or "")).strip()
        log.warning("rf: hciconfig hci0 lp rswitch,hold failed: %s (output: %s)", exc, output)
        return False
    except (OSError, subprocess.SubprocessError) as exc:
        log.warning("rf: hciconfig hci0 lp rswitch,hold failed: %s", exc)
        return False
    log.info("rf: disabled SNIFF on hci0 default link policy")
    return True


def _run_quiet(args: Sequence[str], timeout: float) -> None:
    try:
        subprocess.run(
            list(args),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        pass


def _spawn(args: Sequence[str]) -> _Process:
    return subprocess.Popen(list(args), stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


def _terminate(proc: _Process) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=2)
    except subprocess.TimeoutExpired:
        proc.kill()


class RfcommSupervisor:
    """Runs and restarts ``rfcomm connect`` while the TNC is a Bluetooth serial device.

    Hooks: ``discover_mac(device)`` asks which remote is bound to a device
    (used once, on the first reconcile, when no address is configured);
    ``on_discovered(mac)`` receives an address found that way;
    ``ensure_ready()`` raises if the adapter is not usable.
    """

    def __init__(
        self,
        discover_mac: Callable[[str], str | None] | None = None,
        on_discovered: Callable[[str], None] | None = None,
        ensure_ready: Callable[[], None] | None = None,
        *,
        prepare: Callable[[], object] = disable_bt_sniff,
        run_command: Callable[[Sequence[str], float], object] = _run_quiet,
        spawn: Callable[[Sequence[str]], _Process] = _spawn,
        initial_backoff: float = 1.0,
    ) -> None:
        self._discover_mac = discover_mac
        self._on_discovered = on_discovered
        self._ensure_ready = ensure_ready
        self._prepare = prepare
        self._run_command = run_command
        self._spawn = spawn
        self._initial_backoff = initial_backoff
        self._lock = threading.Lock()
        self._cancel: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._target: tuple[str, str, int] | None = None
        self._discovery_ran = False

    @property
    def target(self) -> tuple[str, str, int] | None:
        """The ``(address, device, channel)`` being kept bound, or None."""
        with self._lock:
            return self._target if self._cancel is not None else None

    def reconcile(self, kind: str, device: str, address: str, channel: int) -> bool:
        """Bring the running binding in line with the settings; return whether one is active."""
        addr = address.upper()
        ch = channel if channel > 0 else 1

        with self._lock:
            first = not self._discovery_ran
            self._discovery_ran = True
        if first and kind == TNC_SERIAL and is_rfcomm_device(device) and not is_bt_address(addr):
            discovered = None
            if self._discover_mac is not None:
                try:
                    discovered = self._discover_mac(device)
                except Exception as exc:  # a failed probe only means nothing was found
                    log.debug("rf: rfcomm probe on %s failed: %s", device, exc)
            if discovered:
                log.info("rf: discovered MAC %s on %s — adopting into settings", discovered, device)
                if self._on_discovered is not None:
                    self._on_discovered(discovered)
                return False
            log.info(
                "rf: bluetooth supervisor inactive (%s configured but no address)", device
            )

        want = kind == TNC_SERIAL and is_rfcomm_device(device) and is_bt_address(addr)
        with self._lock:
            if not want:
                self._cancel_locked()
                return False
            target = (addr, device, ch)
            if self._cancel is not None and self._target == target:
                return True
            self._cancel_locked()
            self._target = target
            cancel = threading.Event()
            self._cancel = cancel
            thread = threading.Thread(
                target=self._supervise,
                args=(cancel, addr, device, ch),
                name=f"rfcomm-{device}",
                daemon=True,
            )
            self._thread = thread
        thread.start()
        return True

    def _cancel_locked(self) -> None:
        if self._cancel is not None:
            self._cancel.set()
            self._cancel = None

    def run(self, stop: threading.Event) -> None:
        """Block until ``stop`` is set, then tear down the binding."""
        stop.wait()
        self.stop()

    def stop(self) -> None:
        """Stop the supervised binding and wait for its worker to finish."""
        with self._lock:
            self._cancel_locked()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)

    def _supervise(self, cancel: threading.Event, addr: str, device: str, channel: int) -> None:
        idx = str(rfcomm_index(device))
        self._prepare()
        backoff = self._initial_backoff
        while not cancel.is_set():
            if self._ensure_ready is not None:
                try:
                    self._ensure_ready()
                except Exception as exc:
                    log.warning("rf: bt adapter not ready: %s (retry in %.1fs)", exc, backoff)
                    if cancel.wait(backoff):
                        return
                    backoff = min(backoff * 2, MAX_BACKOFF) if backoff < MAX_BACKOFF else backoff
                    continue

            self._run_command(["rfcomm", "release", idx], 3.0)

            log.info("rf: rfcomm connect %s %s %d", idx, addr, channel)
            try:
                proc = self._spawn(["rfcomm", "connect", idx, addr, str(channel)])
            except OSError as exc:
                log.warning("rf: rfcomm connect failed to start: %s (retry in %.1fs)", exc, backoff)
            else:
                returncode = self._wait_process(proc, cancel)
                if returncode is None:
                    return
                if returncode:
                    log.warning(
                        "rf: rfcomm connect exited: status %d (retry in %.1fs)", returncode, backoff
                    )
                else:
                    log.info("rf: rfcomm connect exited cleanly (retry in %.1fs)", backoff)
            if cancel.wait(backoff):
                return
            if backoff < MAX_BACKOFF:
                backoff *= 2

    @staticmethod
    def _wait_process(proc: _Process, cancel: threading.Event) -> int | None:
        """Wait for ``proc``; terminate it and return None if cancelled first."""
        while True:
            if cancel.is_set():
                _terminate(proc)
                return None
            try:
                return proc.wait(timeout=_PROCESS_POLL)
            except subprocess.TimeoutExpired:
                continue