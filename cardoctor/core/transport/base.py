from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceHandle:
    device_id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"device_id": self.device_id, "name": self.name}


class Session(ABC):
    """An open link to one diagnostic adapter.

    `request()` sends a raw OBD-II request (e.g. ``b"\\x03"``) and returns the
    raw response bytes. Framing, echo handling and adapter AT commands belong to
    the concrete implementation.
    """

    @abstractmethod
    def request(self, payload: bytes) -> bytes:
        raise NotImplementedError

    def close(self) -> None:
        return None


class Scanner(ABC):
    """Discovers adapters and opens sessions to them."""

    @abstractmethod
    def scan(self) -> list[DeviceHandle]:
        raise NotImplementedError

    @abstractmethod
    def connect(self, handle: DeviceHandle) -> Session:
        raise NotImplementedError
