from __future__ import annotations

import json
import logging

import pytest

from cardoctor.core.service import DiagnosticService, ServiceError
from cardoctor.core.transport import DeviceHandle, MockScanner, ReplayScanner
from cardoctor.core.util.hexcodec import InvalidHex


class TrackingScanner(MockScanner):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.sessions = []

    def connect(self, handle: DeviceHandle):
        session = super().connect(handle)
        self.sessions.append(session)
        return session


def test_scan_and_read_dtcs():
    service = DiagnosticService(MockScanner())
    devices = service.scan_devices()
    assert len(devices) == 3

    handle = service.connect("1")
    assert handle.name == "OBDII-Sim A"
    assert service.connected_device == handle

    dtcs = service.read_dtcs()
    assert [d["code"] for d in dtcs] == ["P0130", "P3102", "C0230"]
    assert all(d["device_id"] == "1" for d in dtcs)


def test_connect_scans_when_needed():
    service = DiagnosticService(MockScanner())
    assert service.connect("3").name == "OBDII-Sim C"


def test_connect_unknown_device():
    service = DiagnosticService(MockScanner())
    with pytest.raises(ServiceError, match="unknown device"):
        service.connect("42")


def test_read_requires_connection():
    service = DiagnosticService(MockScanner())
    with pytest.raises(ServiceError, match="not connected"):
        service.read_dtcs()


def test_reconnect_closes_previous_session():
    scanner = TrackingScanner()
    service = DiagnosticService(scanner)
    service.connect("1")
    service.connect("2")
    assert scanner.sessions[0].closed
    assert not scanner.sessions[1].closed
    assert service.connected_device.device_id == "2"


def test_context_manager_closes_session():
    scanner = TrackingScanner()
    with DiagnosticService(scanner) as service:
        service.connect("1")
    assert scanner.sessions[0].closed
    assert service.connected_device is None


def test_non_mode03_reply_yields_no_codes(caplog):
    service = DiagnosticService(MockScanner(responses={"1": "7F 03 11"}))
    service.connect("1")
    with caplog.at_level(logging.WARNING, logger="cardoctor.core.service"):
        assert service.read_dtcs() == []
    assert any("not a Mode 03 reply" in r.getMessage() for r in caplog.records)


def test_decode_text_and_bytes():
    service = DiagnosticService(MockScanner(), digit3_policy="hex")
    assert [d["code"] for d in service.decode("43 0A 00")] == ["P0A00"]
    assert [d["code"] for d in service.decode(b"\x43\x0a\x00")] == ["P0A00"]


def test_decode_invalid_hex_propagates():
    with pytest.raises(InvalidHex):
        DiagnosticService(MockScanner()).decode("43G1")


def test_invalid_policy_rejected():
    with pytest.raises(ValueError):
        DiagnosticService(MockScanner(), digit3_policy="bogus")


def test_record_then_replay(tmp_path):
    path = tmp_path / "session.jsonl"
    with DiagnosticService(MockScanner(), record_path=str(path)) as service:
        service.connect("1")
        recorded = service.read_dtcs()

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [e["dir"] for e in lines] == ["tx", "rx"]

    with DiagnosticService(ReplayScanner(path)) as service:
        service.connect("replay")
        replayed = service.read_dtcs()
    assert [d["code"] for d in replayed] == [d["code"] for d in recorded]


def test_unwritable_record_path_closes_session(tmp_path):
    scanner = TrackingScanner()
    service = DiagnosticService(scanner, record_path=str(tmp_path / "missing" / "rec.jsonl"))
    with pytest.raises(ServiceError, match="cannot open recording"):
        service.connect("1")
    assert scanner.sessions[0].closed
    assert service.connected_device is None
