from __future__ import annotations

import json
from pathlib import Path

from cardoctor.core.transport.base import DeviceHandle, Scanner, Session
from cardoctor.core.util.hexcodec import InvalidHex, format_hex, parse_hex


class ReplayError(Exception):
    pass


def load_events(path: str | Path) -> list[tuple[str, bytes]]:
    events: list[tuple[str, bytes]] = []
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise ReplayError(f"cannot read recording: {path}") from exc
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
            direction = str(obj["dir"])
            data = parse_hex(str(obj["data"]))
        except (ValueError, KeyError, TypeError, InvalidHex) as exc:
            raise ReplayError(f"malformed event at line {lineno}") from exc
        if direction not in {"tx", "rx"}:
            raise ReplayError(f"unknown direction at line {lineno}: {direction}")
        events.append((direction, data))
    return events


class ReplaySession(Session):
    """Serves responses from a recording made by RecordingSession.

    Requests must match the recorded tx events in order.
    """

    def __init__(self, path: str | Path) -> None:
        self._events = load_events(path)
        self._pos = 0

    def request(self, payload: bytes) -> bytes:
        expected = self._next("tx")
        if expected != bytes(payload):
            raise ReplayError(f"request mismatch: expected {format_hex(expected)}, got {format_hex(payload)}")
        return self._next("rx")

    def _next(self, direction: str) -> bytes:
        if self._pos >= len(self._events):
            raise ReplayError("recording exhausted")
        got_dir, data = self._events[self._pos]
        if got_dir != direction:
            raise ReplayError(f"expected {direction} event at position {self._pos}, found {got_dir}")
        self._pos += 1
        return data


class ReplayScanner(Scanner):
    HANDLE = DeviceHandle(device_id="replay", name="Replay")

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def scan(self) -> list[DeviceHandle]:
        return [self.HANDLE]

    def connect(self, handle: DeviceHandle) -> Session:
        if handle != self.HANDLE:
            raise ValueError(f"unknown device: {handle.device_id}")
        return ReplaySession(self._path)
