"""
Demodulator FIR filter coefficients.

The channel filter takes 16 taps: eight signed 8-bit values followed by
eight signed 12-bit values packed two-per-three-bytes, 20 bytes total.
"""

from typing import Sequence, Tuple

FIR_LEN = 16
FIR_PACKED_LEN = 20

DEFAULT_FIR: Tuple[int, ...] = (
    -54, -36, -41, -40, -32, -14, 14, 53,  # i8
    101, 156, 215, 273, 327, 372, 404, 421,  # i12
)


def pack_fir(coefficients: Sequence[int]) -> bytes:
    """
    Pack 16 FIR taps into the 20-byte register image.

    Example (12-bit section):
        taps 0x4b5, 0x7f8 -> bytes 4b 57 f8

    Args:
        coefficients: 16 taps; 0-7 in [-128, 127], 8-15 in [-2048, 2047]

    Returns:
        20 bytes for demod registers 0x1c..0x2f

    Raises:
        ValueError: If the tap count or any tap range is wrong
    """
    if len(coefficients) != FIR_LEN:
        raise ValueError(f"FIR needs {FIR_LEN} coefficients, got {len(coefficients)}")

    packed = bytearray(FIR_PACKED_LEN)
    for i in range(8):
        val = coefficients[i]
        if not -128 <= val <= 127:
            raise ValueError(f"i8 FIR coefficient out of bounds: {val}")
        packed[i] = val & 0xFF

    for i in range(0, 8, 2):
        val0 = coefficients[8 + i]
        val1 = coefficients[8 + i + 1]
        for val in (val0, val1):
            if not -2048 <= val <= 2047:
                raise ValueError(f"i12 FIR coefficient out of bounds: {val}")
        pos = 8 + i * 3 // 2
        packed[pos] = (val0 >> 4) & 0xFF
        packed[pos + 1] = ((val0 << 4) | ((val1 >> 8) & 0x0F)) & 0xFF
        packed[pos + 2] = val1 & 0xFF

    return bytes(packed)
