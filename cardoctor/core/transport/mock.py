from __future__ import annotations

import logging
import time

from cardoctor.core.transport.base import DeviceHandle, Scanner, Session
from cardoctor.core.util.hexcodec import parse_hex


log = logging.getLogger(__name__)

DEFAULT_DEVICES = (
    DeviceHandle(device_id="1", name="OBDII-Sim A"),
    DeviceHandle(device_id="2", name="OBDII-Sim B"),
    DeviceHandle(device_id="3", name="OBDII-Sim C"),
)

DEFAULT_MODE03_RESPONSE = "43 01 30 31 02 42 30"


class MockSession(Session):
    """In-memory adapter answering Mode 03 with a fixed response."""

    def __init__(self, handle: DeviceHandle, mode03_response: str = DEFAULT_MODE03_RESPONSE) -> None:
        self.handle = handle
        self._mode03 = parse_hex(mode03_response)
        self.closed = False

    def request(self, payload: bytes) -> bytes:
        if self.closed:
            raise RuntimeError("session closed")
        if not payload:
            return b""
        service = payload[0]
        if service == 0x03:
            return self._mode03
        # serviceNotSupported
        return bytes([0x7F, service, 0x11])

    def close(self) -> None:
        self.closed = True


class MockScanner(Scanner):
    """Simulated adapter discovery for local development and deterministic tests."""

    def __init__(
        self,
        devices: tuple[DeviceHandle, ...] | list[DeviceHandle] = DEFAULT_DEVICES,
        *,
        responses: dict[str, str] | None = None,
        scan_delay_ms: int = 0,
    ) -> None:
        if int(scan_delay_ms) < 0:
            raise ValueError("scan_delay_ms must be >= 0")
        self._devices = list(devices)
        self._responses = dict(responses or {})
        self._scan_delay_ms = int(scan_delay_ms)

    def scan(self) -> list[DeviceHandle]:
        if self._scan_delay_ms:
            time.sleep(self._scan_delay_ms / 1000.0)
        log.debug("Mock scan complete", extra={"device_count": len(self._devices)})
        return list(self._devices)

    def connect(self, handle: DeviceHandle) -> Session:
        if handle not in self._devices:
            raise ValueError(f"unknown device: {handle.device_id}")
        response = self._responses.get(handle.device_id, DEFAULT_MODE03_RESPONSE)
        return MockSession(handle, response)
