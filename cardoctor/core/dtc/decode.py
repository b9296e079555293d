from __future__ import annotations

from typing import Iterator

from cardoctor.core.dtc.format import (
    DEFAULT_DIGIT3_POLICY,
    pair_to_code,
    pair_to_raw_hex,
    system_name,
    validate_digit3_policy,
)
from cardoctor.core.util.hexcodec import parse_hex

# Positive response to service 0x03 (read stored DTCs).
MODE03_RESPONSE_MARKER = 0x43


def iter_pairs(data: bytes) -> Iterator[tuple[int, int]]:
    """Yield (high, low) byte pairs following the Mode 03 marker.

    Nothing is yielded when the marker is missing. A trailing odd byte is dropped.
    """

    if not data or data[0] != MODE03_RESPONSE_MARKER:
        return
    offset = 1
    while offset + 1 < len(data):
        yield data[offset], data[offset + 1]
        offset += 2


def decode_response(data: bytes, *, digit3_policy: str = DEFAULT_DIGIT3_POLICY) -> list[str]:
    policy = validate_digit3_policy(digit3_policy)
    return [pair_to_code(high, low, digit3_policy=policy) for high, low in iter_pairs(data)]


def decode_hex_response(text: str, *, digit3_policy: str = DEFAULT_DIGIT3_POLICY) -> list[str]:
    # InvalidHex from the codec propagates to the caller.
    return decode_response(parse_hex(text), digit3_policy=digit3_policy)


def decode_dtcs(data: bytes, *, digit3_policy: str = DEFAULT_DIGIT3_POLICY) -> list[dict[str, object]]:
    policy = validate_digit3_policy(digit3_policy)
    decoded: list[dict[str, object]] = []
    for high, low in iter_pairs(data):
        code = pair_to_code(high, low, digit3_policy=policy)
        decoded.append(
            {
                "code": code,
                "system": code[0],
                "system_name": system_name(code),
                "raw": pair_to_raw_hex(high, low),
            }
        )
    return decoded
