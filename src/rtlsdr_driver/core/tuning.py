"""
Fixed-point tuning arithmetic for the RTL2832U demodulator.

All functions are pure: they compute register values without touching
hardware, so the protocol driver only sequences the writes.
"""

from dataclasses import dataclass
from typing import Tuple

from ..utils.conversions import to_signed

DEF_RTL_XTAL_FREQ = 28_800_000
MIN_RTL_XTAL_FREQ = DEF_RTL_XTAL_FREQ - 1000
MAX_RTL_XTAL_FREQ = DEF_RTL_XTAL_FREQ + 1000

# Resampler envelope: (225 kHz, 3.2 MHz] minus the (300 kHz, 900 kHz] gap
MIN_SAMPLE_RATE = 225_000  # exclusive
MAX_SAMPLE_RATE = 3_200_000
DEAD_ZONE_LOW = 300_000  # exclusive
DEAD_ZONE_HIGH = 900_000

# 2^22: resampler and IF registers are referenced to xtal / 2^22
_TWO_POW_22 = 1 << 22
_TWO_POW_24 = 1 << 24

_RESAMPLER_MASK = 0x0FFFFFFC  # 28-bit field, low two bits must be clear
_RESAMPLER_SIGN = 0x08000000


@dataclass(frozen=True)
class ResamplerSetting:
    """Quantized resampler configuration for a requested rate."""

    ratio: int  # Masked 28-bit ratio
    real_ratio: int  # Ratio with the sign bit duplicated
    real_rate: int  # Achieved sample rate in Hz (truncated)

    @property
    def high_word(self) -> int:
        """Upper 16 bits written to demod register 0x9f."""
        return (self.real_ratio >> 16) & 0xFFFF

    @property
    def low_word(self) -> int:
        """Lower 16 bits written to demod register 0xa1."""
        return self.real_ratio & 0xFFFF


def is_valid_sample_rate(rate: int) -> bool:
    """Check a requested rate against the resampler envelope."""
    if rate <= MIN_SAMPLE_RATE or rate > MAX_SAMPLE_RATE:
        return False
    return not (DEAD_ZONE_LOW < rate <= DEAD_ZONE_HIGH)


def compute_resampler(xtal_freq: int, rate: int) -> ResamplerSetting:
    """
    Quantize a requested sample rate to the hardware resampler.

    Args:
        xtal_freq: Demodulator crystal frequency in Hz
        rate: Requested sample rate in Hz (must be legal)

    Returns:
        ResamplerSetting with the achieved rate
    """
    ratio = (xtal_freq * _TWO_POW_22 // rate) & _RESAMPLER_MASK
    real_ratio = ratio | ((ratio & _RESAMPLER_SIGN) << 1)
    real_rate = int(xtal_freq * _TWO_POW_22 / real_ratio)
    return ResamplerSetting(ratio=ratio, real_ratio=real_ratio, real_rate=real_rate)


def if_freq_registers(freq: int, xtal_freq: int) -> Tuple[int, int, int]:
    """
    Encode an IF frequency into the 22-bit DDC register triple.

    The value is negated to match the demodulator's down-conversion sign.

    Returns:
        (high 6 bits, middle byte, low byte) for demod regs 0x19/0x1a/0x1b
    """
    if_freq = int(round(freq * _TWO_POW_22 / xtal_freq * -1))
    return (if_freq >> 16) & 0x3F, (if_freq >> 8) & 0xFF, if_freq & 0xFF


def freq_correction_offset(ppm: int) -> int:
    """Signed 16-bit resampler correction for a PPM error."""
    return to_signed(int(round(-ppm * _TWO_POW_24 / 1_000_000)), 16)


def freq_correction_registers(ppm: int) -> Tuple[int, int]:
    """
    Encode a PPM correction into the 14-bit sample clock correction field.

    Returns:
        (low byte for demod reg 0x3f, high 6 bits for demod reg 0x3e)
    """
    offs = freq_correction_offset(ppm)
    return offs & 0xFF, (offs >> 8) & 0x3F


def corrected_freq(freq: int, ppm: int) -> int:
    """Apply a PPM correction to a clock frequency."""
    return int(freq * (1.0 + ppm / 1e6))
