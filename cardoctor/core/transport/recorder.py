from __future__ import annotations

import json

from cardoctor.core.transport.base import Session
from cardoctor.core.util.hexcodec import format_hex


class RecordingSession(Session):
    def __init__(self, inner: Session, path: str) -> None:
        self._inner = inner
        self._path = path
        self._tick = 0
        self._file = open(path, "w", encoding="utf-8")

    def request(self, payload: bytes) -> bytes:
        self._write_event("tx", payload)
        response = self._inner.request(payload)
        self._write_event("rx", response)
        return response

    def close(self) -> None:
        try:
            self._inner.close()
        finally:
            self._file.close()

    def _write_event(self, direction: str, data: bytes) -> None:
        # One compact JSON object per line; replayable by ReplaySession.
        event = {"t": self._tick, "dir": direction, "data": format_hex(data)}
        self._tick += 1
        self._file.write(json.dumps(event, separators=(",", ":")) + "\n")
        self._file.flush()
