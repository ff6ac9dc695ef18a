"""
Unsigned bit-field arithmetic shared by every simulator component.

Addresses are plain Python ints. Python integers are arbitrary precision,
so masks and shifts near the 64-bit boundary are exact:

    mask_of(64)              = 0xFFFFFFFFFFFFFFFF
    clamp_to_bits(1 << 64, 64) = 0

FORMATTING:
===========

    to_hex(0x1004, 8)  -> "0x00001004"
    to_bin(0b101, 8)   -> "00000101"
"""

from __future__ import annotations

from typing import Optional

from memsim_viz.models.errors import ConfigError

MIN_ADDRESS_BITS = 1
MAX_ADDRESS_BITS = 64


def mask_of(bits: int) -> int:
    """Get a mask covering the low ``bits`` bits (0 if bits <= 0)."""
    if bits <= 0:
        return 0
    return (1 << bits) - 1


def is_power_of_two(n: int) -> bool:
    """Check whether ``n`` is a positive integral power of two."""
    if isinstance(n, bool) or not isinstance(n, int):
        return False
    return n > 0 and (n & (n - 1)) == 0


def log2_exact(n: int, name: str = "value") -> int:
    """
    Get the exact base-2 logarithm of a power of two.

    Args:
        n: The value to take the logarithm of.
        name: Parameter name reported in the error.

    Returns:
        The exponent ``k`` such that ``2**k == n``.

    Raises:
        ConfigError: If ``n`` is not a power of two.
    """
    if not is_power_of_two(n):
        raise ConfigError(name, n, f"{name} must be a power of two")
    return n.bit_length() - 1


def clamp_to_bits(value: int, bits: int) -> int:
    """Clamp ``value`` to its low ``bits`` bits."""
    return value & mask_of(bits)


def nibbles_for(bits: int) -> int:
    """Number of hex digits needed to show a ``bits``-wide value."""
    return (bits + 3) // 4


def to_hex(value: int, min_digits: int = 0) -> str:
    """Format as ``0x``-prefixed uppercase hex, zero-padded to ``min_digits``."""
    digits = f"{value:X}"
    if min_digits > 0:
        digits = digits.rjust(min_digits, "0")
    return "0x" + digits


def to_bin(value: int, bits: Optional[int] = None) -> str:
    """Format as a binary string, zero-padded to ``bits`` if given."""
    digits = f"{value:b}"
    if bits is not None:
        digits = digits.rjust(bits, "0")
    return digits


def validate_width(name: str, bits: int) -> int:
    """
    Validate an address width.

    Raises:
        ConfigError: If ``bits`` is outside [1, 64].
    """
    if bits < MIN_ADDRESS_BITS or bits > MAX_ADDRESS_BITS:
        raise ConfigError(
            name, bits,
            f"{name} must be between {MIN_ADDRESS_BITS} and {MAX_ADDRESS_BITS}"
        )
    return bits
