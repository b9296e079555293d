from __future__ import annotations

_DTC_PREFIX = {0: "P", 1: "C", 2: "B", 3: "U"}

SYSTEM_NAMES: dict[str, str] = {
    "P": "Powertrain",
    "C": "Chassis",
    "B": "Body",
    "U": "Network",
}

# How the low nibble of the high byte is rendered.
# "decimal" keeps the plain integer render (10..15 become two characters);
# "hex" renders a single SAE-style hex digit.
DIGIT3_POLICIES = ("decimal", "hex")
DEFAULT_DIGIT3_POLICY = "decimal"


def validate_digit3_policy(policy: str) -> str:
    value = (policy or "").strip().lower()
    if value not in DIGIT3_POLICIES:
        raise ValueError(f"invalid digit3 policy: {policy!r}")
    return value


def pair_to_code(high: int, low: int, *, digit3_policy: str = DEFAULT_DIGIT3_POLICY) -> str:
    high &= 0xFF
    low &= 0xFF
    prefix = _DTC_PREFIX[(high >> 6) & 0x3]
    second = (high >> 4) & 0x3
    nibble = high & 0x0F
    if validate_digit3_policy(digit3_policy) == "hex":
        third = f"{nibble:X}"
    else:
        third = str(nibble)
    return f"{prefix}{second}{third}{low:02X}"


def pair_to_raw_hex(high: int, low: int) -> str:
    return f"{high & 0xFF:02X}{low & 0xFF:02X}"


def system_name(code: str) -> str:
    return SYSTEM_NAMES.get((code or "")[:1].upper(), "Unknown")
