from __future__ import annotations

from cardoctor.core.dtc.decode import decode_dtcs, decode_hex_response, decode_response, iter_pairs
from cardoctor.core.dtc.format import DIGIT3_POLICIES, pair_to_code, system_name

__all__ = [
    "DIGIT3_POLICIES",
    "decode_dtcs",
    "decode_hex_response",
    "decode_response",
    "iter_pairs",
    "pair_to_code",
    "system_name",
]
