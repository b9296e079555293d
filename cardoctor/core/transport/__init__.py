from __future__ import annotations

from cardoctor.core.transport.base import DeviceHandle, Scanner, Session
from cardoctor.core.transport.mock import MockScanner, MockSession
from cardoctor.core.transport.recorder import RecordingSession
from cardoctor.core.transport.replay import ReplayError, ReplayScanner, ReplaySession

__all__ = [
    "DeviceHandle",
    "MockScanner",
    "MockSession",
    "RecordingSession",
    "ReplayError",
    "ReplayScanner",
    "ReplaySession",
    "Scanner",
    "Session",
]
