"""
Decoding of raw SMC register payloads.

Every SMC key carries a four character data type (`ui16`, `sp78`, `flt `...)
and up to 32 payload bytes. Integers and fixed-point values are big-endian;
`flt ` is a native single precision float.
"""
import struct
from typing import Optional, Tuple

from smc_exporter.core.models.sensor_data import Number
from smc_exporter.core.models.value_kind import ValueKind

KEY_SIZE = 4

UNSIGNED_TYPES = ("ui8 ", "ui16", "ui32")
UNSIGNED_FIXED_POINT = ("fp1f", "fp4c", "fp5b", "fp6a", "fp79", "fp88", "fpa6", "fpc4", "fpe2")
SIGNED_FIXED_POINT = ("sp1e", "sp3c", "sp4b", "sp5a", "sp69", "sp78", "sp87", "sp96", "spb4", "spf0")


def encode_key(key: str) -> int:
    """Pack a four character key into the UInt32 the controller expects."""
    raw = key.encode("ascii")
    if len(raw) != KEY_SIZE:
        raise ValueError(f"SMC keys are {KEY_SIZE} characters, got {key!r}")
    return int.from_bytes(raw, "big")


def decode_key(value: int) -> str:
    """Inverse of encode_key."""
    return value.to_bytes(KEY_SIZE, "big").decode("ascii", errors="replace")


def _fraction_bits(data_type: str) -> int:
    # The last hex digit of fpXY / spXY is the number of fraction bits
    return int(data_type[3], 16)


def decode(data_type: str, data: bytes) -> Optional[Tuple[ValueKind, Number]]:
    """
    Decode an SMC payload.

    Returns:
        (kind, value), or None when the type/size combination is not a
        numeric type the exporter understands.
    """
    size = len(data)
    if size == 0:
        return None

    if data_type in UNSIGNED_TYPES:
        return ValueKind.UNSIGNED, int.from_bytes(data, "big", signed=False)

    if data_type == "si8 " and size == 1:
        return ValueKind.SIGNED, int.from_bytes(data, "big", signed=True)
    if data_type == "si16" and size == 2:
        return ValueKind.SIGNED, int.from_bytes(data, "big", signed=True)

    if data_type == "flt " and size == 4:
        return ValueKind.FLOAT, struct.unpack("=f", data)[0]

    if size != 2:
        return None

    if data_type in UNSIGNED_FIXED_POINT:
        raw = int.from_bytes(data, "big", signed=False)
        return ValueKind.FLOAT, raw / (1 << _fraction_bits(data_type))
    if data_type in SIGNED_FIXED_POINT:
        raw = int.from_bytes(data, "big", signed=True)
        return ValueKind.FLOAT, raw / (1 << _fraction_bits(data_type))
    if data_type == "{pwm":
        raw = int.from_bytes(data, "big", signed=False)
        return ValueKind.FLOAT, raw * 100 / 65536.0

    return None
