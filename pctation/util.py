"""Bit manipulation helpers and file loading."""

from __future__ import annotations

import os
from pathlib import Path

U8_MASK = 0xFF
U16_MASK = 0xFFFF
U32_MASK = 0xFFFFFFFF


def sign_extend(value: int, sign_bit: int) -> int:
    """Interpret ``value`` as signed, with ``sign_bit`` as its sign bit."""
    if not 0 < sign_bit < 63:
        raise ValueError(f"sign bit out of range: {sign_bit}")
    mask = (1 << sign_bit) - 1
    result = value & mask
    if value & (1 << sign_bit):
        result |= ~mask
    return result


def leading_zeroes(value: int, bits: int) -> int:
    """Count the zero bits above the highest set bit of a ``bits``-wide value.

    A value of zero yields zero.
    """
    if bits <= 0:
        raise ValueError(f"bit width must be positive: {bits}")
    unsigned = value & ((1 << bits) - 1)
    if unsigned == 0:
        return 0
    return bits - unsigned.bit_length()


def load_file(path: str | os.PathLike[str]) -> bytes:
    """Return the whole contents of a file; raises ``OSError`` on failure."""
    return Path(path).read_bytes()