"""
Tuning state record for one open receiver session.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List

from ..tuners.base import NoTuner, Tuner
from .fir import DEFAULT_FIR
from .tuning import DEF_RTL_XTAL_FREQ


class DirectSamplingMode(Enum):
    """Direct sampling (tuner bypass) modes."""

    OFF = 0
    ON = 1  # I-branch ADC
    ON_SWAP = 2  # I and Q ADC swapped, selects the other input

    @classmethod
    def from_str(cls, name: str) -> "DirectSamplingMode":
        """Parse "off", "on" or "on_swap"."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Invalid direct sampling mode: {name}. Must be 'off', 'on' or 'on_swap'"
            )


class InitState(Enum):
    """Session bring-up progress; transitions only move forward."""

    UNCLAIMED = auto()
    INTERFACE_CLAIMED = auto()
    BASEBAND_INITIALIZED = auto()
    TUNER_DETECTED = auto()
    TUNER_INITIALIZED = auto()
    READY = auto()


@dataclass
class TuningState:
    """Mutable configuration of an open receiver; guarded by the driver lock."""

    center_freq_hz: int = 0
    sample_rate_hz: int = 0  # Achieved rate, never the raw request
    bandwidth_hz: int = 0  # 0 = follow sample rate
    direct_sampling_mode: DirectSamplingMode = DirectSamplingMode.OFF
    crystal_hz: int = DEF_RTL_XTAL_FREQ
    tuner_crystal_hz: int = DEF_RTL_XTAL_FREQ
    ppm_correction: int = 0
    offset_freq_hz: int = 0
    force_bias_tee: bool = False  # From EEPROM byte 7, fixed after init
    force_direct_sampling: bool = False  # From EEPROM byte 7, fixed after init
    fir_coefficients: List[int] = field(default_factory=lambda: list(DEFAULT_FIR))
    tuner: Tuner = field(default_factory=NoTuner)
    init_state: InitState = InitState.UNCLAIMED
