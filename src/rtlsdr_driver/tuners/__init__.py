"""
Tuner abstraction - chip contract, detection table and driver registry.
"""

from .base import NoTuner, Tuner, TunerGain, TunerInfo
from .registry import (
    KNOWN_TUNERS,
    R82XX_IF_FREQ,
    TunerDescriptor,
    TunerRegistry,
    get_tuner_registry,
    is_r82xx,
    register_tuner,
)

__all__ = [
    "Tuner",
    "NoTuner",
    "TunerGain",
    "TunerInfo",
    "TunerDescriptor",
    "TunerRegistry",
    "KNOWN_TUNERS",
    "R82XX_IF_FREQ",
    "get_tuner_registry",
    "register_tuner",
    "is_r82xx",
]
