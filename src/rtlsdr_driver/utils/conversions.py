"""
Unit and fixed-point conversion helpers.
"""

from typing import Union

Numeric = Union[float, int]


def to_signed(value: int, bits: int) -> int:
    """
    Reinterpret the low bits of value as a two's-complement integer.

    Args:
        value: Integer (any sign); only the low `bits` bits are kept
        bits: Field width

    Returns:
        Signed integer in [-2**(bits-1), 2**(bits-1) - 1]
    """
    mask = (1 << bits) - 1
    value &= mask
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


def freq_to_str(freq_hz: Numeric) -> str:
    """
    Convert frequency to human-readable string.

    Args:
        freq_hz: Frequency in Hz

    Returns:
        Formatted string (e.g., "144.200000 MHz")
    """
    if freq_hz >= 1e9:
        return f"{freq_hz / 1e9:.6f} GHz"
    elif freq_hz >= 1e6:
        return f"{freq_hz / 1e6:.6f} MHz"
    elif freq_hz >= 1e3:
        return f"{freq_hz / 1e3:.3f} kHz"
    else:
        return f"{freq_hz:.1f} Hz"


def sample_rate_to_str(rate_hz: Numeric) -> str:
    """
    Convert sample rate to human-readable string.

    Args:
        rate_hz: Sample rate in Hz

    Returns:
        Formatted string (e.g., "2.40 MS/s")
    """
    if rate_hz >= 1e6:
        return f"{rate_hz / 1e6:.2f} MS/s"
    elif rate_hz >= 1e3:
        return f"{rate_hz / 1e3:.2f} kS/s"
    else:
        return f"{rate_hz:.0f} S/s"
