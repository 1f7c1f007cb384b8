"""
I/Q sample utilities.

The RTL2832U delivers interleaved unsigned 8-bit I/Q pairs centered on
127.5.
"""

import numpy as np


def interleaved_u8_to_complex(data) -> np.ndarray:
    """
    Convert interleaved unsigned 8-bit I/Q bytes to complex samples.

    Args:
        data: Bytes-like [I0, Q0, I1, Q1, ...]; a trailing odd byte is dropped

    Returns:
        complex64 array normalized to [-1, 1]
    """
    raw = np.frombuffer(bytes(data), dtype=np.uint8)
    raw = raw[: len(raw) - (len(raw) % 2)]
    iq = (raw.astype(np.float32) - 127.5) / 127.5
    iq = iq.reshape(-1, 2)
    return (iq[:, 0] + 1j * iq[:, 1]).astype(np.complex64)

