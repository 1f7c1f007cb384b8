"""
Core module - Register arithmetic, driver state and configuration.

RtlSdrDriver and DeviceManager depend on the devices package; import them
from rtlsdr_driver.core.driver and rtlsdr_driver.core.device_manager.
"""

from .config import ConfigValidationError, DriverConfig, get_preset, list_presets
from .exceptions import (
    FatalInitializationError,
    InvalidArgumentError,
    ProtocolError,
    RtlSdrError,
    TransportError,
)
from .fir import DEFAULT_FIR, pack_fir
from .state import DirectSamplingMode, InitState, TuningState

__all__ = [
    # Configuration
    "DriverConfig",
    "ConfigValidationError",
    "get_preset",
    "list_presets",
    # Exceptions
    "RtlSdrError",
    "TransportError",
    "ProtocolError",
    "InvalidArgumentError",
    "FatalInitializationError",
    # State
    "DirectSamplingMode",
    "InitState",
    "TuningState",
    # FIR
    "DEFAULT_FIR",
    "pack_fir",
]
