"""
rtlsdr-driver - User-space driver for RTL2832U receivers

Talks to RTL2832U-based DVB-T dongles directly over USB (pyusb) and
replays the vendor register protocol: demodulator bring-up, tuner
detection through the I2C repeater, resampler and DDC programming,
frequency correction, FIR filter, direct sampling and GPIO control.

Supported Hardware:
    - RTL2832U demodulator with R820T/R820T2/R828D tuners
    - RTL-SDR Blog V3/V4 EEPROM overrides (bias tee, direct sampling)

Tuner Drivers:
    Tuner chip drivers plug in through the tuner registry. See
    rtlsdr_driver.tuners for the Tuner base class.
"""

__version__ = "0.1.0"

from .core.config import DriverConfig, get_preset, list_presets
from .core.device_manager import DeviceManager
from .core.driver import RtlSdrDriver
from .core.exceptions import (
    FatalInitializationError,
    InvalidArgumentError,
    ProtocolError,
    RtlSdrError,
    TransportError,
)
from .core.state import DirectSamplingMode
from .devices.rtlsdr import RtlSdr
from .tuners import Tuner, TunerGain, TunerInfo, get_tuner_registry, register_tuner

__all__ = [
    # Sessions
    "RtlSdr",
    "RtlSdrDriver",
    "DeviceManager",
    # Configuration
    "DriverConfig",
    "DirectSamplingMode",
    "get_preset",
    "list_presets",
    # Tuners
    "Tuner",
    "TunerGain",
    "TunerInfo",
    "get_tuner_registry",
    "register_tuner",
    # Exceptions
    "RtlSdrError",
    "TransportError",
    "ProtocolError",
    "InvalidArgumentError",
    "FatalInitializationError",
    # Version
    "__version__",
]
