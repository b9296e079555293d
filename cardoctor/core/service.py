from __future__ import annotations

import logging
from typing import Any

from cardoctor.core.dtc.decode import MODE03_RESPONSE_MARKER, decode_dtcs
from cardoctor.core.dtc.format import DEFAULT_DIGIT3_POLICY, validate_digit3_policy
from cardoctor.core.transport.base import DeviceHandle, Scanner, Session
from cardoctor.core.transport.recorder import RecordingSession
from cardoctor.core.util.hexcodec import format_hex, parse_hex
from cardoctor.logging import TRACE_LEVEL


log = logging.getLogger(__name__)

MODE03_REQUEST = b"\x03"


class ServiceError(Exception):
    pass


class DiagnosticService:
    """High-level diagnostic API used by frontends.

    The scanner is owned by the caller and passed in; the service keeps at most
    one open session at a time.
    """

    def __init__(
        self,
        scanner: Scanner,
        *,
        digit3_policy: str = DEFAULT_DIGIT3_POLICY,
        record_path: str | None = None,
    ) -> None:
        self._scanner = scanner
        self._digit3_policy = validate_digit3_policy(digit3_policy)
        self._record_path = record_path
        self._devices: dict[str, DeviceHandle] = {}
        self._session: Session | None = None
        self._device: DeviceHandle | None = None

    def __enter__(self) -> DiagnosticService:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def connected_device(self) -> DeviceHandle | None:
        return self._device

    def scan_devices(self) -> list[DeviceHandle]:
        log.info("Scanning devices")
        devices = self._scanner.scan()
        self._devices = {d.device_id: d for d in devices}
        log.info("Device scan complete", extra={"device_count": len(devices)})
        return devices

    def connect(self, device_id: str) -> DeviceHandle:
        if not self._devices:
            self.scan_devices()
        handle = self._devices.get(str(device_id))
        if handle is None:
            raise ServiceError(f"unknown device: {device_id}")
        self.disconnect()
        session = self._scanner.connect(handle)
        if self._record_path:
            try:
                session = RecordingSession(session, self._record_path)
            except OSError as exc:
                session.close()
                raise ServiceError(f"cannot open recording {self._record_path}: {exc.strerror or exc}") from exc
        self._session = session
        self._device = handle
        log.info("Connected", extra={"device_id": handle.device_id, "device_name": handle.name})
        return handle

    def disconnect(self) -> None:
        if self._session is None:
            return None
        session, device = self._session, self._device
        self._session = None
        self._device = None
        session.close()
        log.debug("Disconnected", extra={"device_id": device.device_id if device else None})

    def close(self) -> None:
        self.disconnect()

    def read_dtcs(self) -> list[dict[str, object]]:
        if self._session is None or self._device is None:
            raise ServiceError("not connected")
        log.info("Read DTCs", extra={"device_id": self._device.device_id})
        raw = self._session.request(MODE03_REQUEST)
        log.debug("Mode 03 response", extra={"raw_hex": format_hex(raw)})
        if not raw or raw[0] != MODE03_RESPONSE_MARKER:
            log.warning("Response is not a Mode 03 reply; no codes", extra={"raw_hex": format_hex(raw)})
        decoded = decode_dtcs(raw, digit3_policy=self._digit3_policy)
        for item in decoded:
            item["device_id"] = self._device.device_id
            log.log(TRACE_LEVEL, "Decoded DTC", extra={"code": item["code"], "raw": item["raw"]})
        log.info("Read DTCs complete", extra={"device_id": self._device.device_id, "dtc_count": len(decoded)})
        return decoded

    def decode(self, raw: str | bytes) -> list[dict[str, object]]:
        data = parse_hex(raw) if isinstance(raw, str) else bytes(raw)
        return decode_dtcs(data, digit3_policy=self._digit3_policy)
