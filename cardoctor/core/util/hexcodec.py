from __future__ import annotations

import string

_HEX_DIGITS = frozenset(string.hexdigits)


class InvalidHex(ValueError):
    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"invalid hex: {reason}")
        self.text = text
        self.reason = reason


def parse_hex(text: str) -> bytes:
    """Parse adapter-style hex text (e.g. ``"43 01 30"``) into bytes.

    All whitespace is ignored. Empty text yields ``b""``.
    """

    compact = "".join((text or "").split())
    if not compact:
        return b""
    if len(compact) % 2 != 0:
        raise InvalidHex(text, "odd number of hex digits")
    bad = next((ch for ch in compact if ch not in _HEX_DIGITS), None)
    if bad is not None:
        raise InvalidHex(text, f"non-hex character {bad!r}")
    return bytes(int(compact[i : i + 2], 16) for i in range(0, len(compact), 2))


def format_hex(data: bytes) -> str:
    # Canonical form: uppercase, two digits per byte, no separator.
    return "".join(f"{b & 0xFF:02X}" for b in data)
