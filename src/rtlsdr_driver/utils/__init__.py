"""
Utility functions and helpers.
"""

from .conversions import freq_to_str, sample_rate_to_str, to_signed
from .iq import interleaved_u8_to_complex

__all__ = [
    "to_signed",
    "freq_to_str",
    "sample_rate_to_str",
    "interleaved_u8_to_complex",
]
