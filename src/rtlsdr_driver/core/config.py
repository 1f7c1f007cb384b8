"""
Configuration management for the RTL-SDR driver.

Handles receiver session settings, validation and JSON persistence.
"""

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..tuners.base import TunerGain
from .state import DirectSamplingMode
from .tuning import MAX_RTL_XTAL_FREQ, MIN_RTL_XTAL_FREQ, is_valid_sample_rate

logger = logging.getLogger(__name__)


class ConfigValidationError(ValueError):
    """Raised when configuration values are invalid."""

    pass


@dataclass
class DriverConfig:
    """Configuration for one receiver session."""

    device_index: int = 0
    # Transfer timeouts
    ctrl_timeout_ms: int = 300
    bulk_timeout_ms: int = 0  # 0 = wait forever
    # Crystal overrides, 0 = keep the 28.8 MHz default
    xtal_freq: int = 0
    tuner_xtal_freq: int = 0
    # Tuning
    center_freq: int = 100_000_000
    sample_rate: int = 2_048_000
    bandwidth: int = 0  # 0 = follow sample rate
    ppm_correction: int = 0
    gain_mode: str = "auto"  # "auto" or "manual"
    gain: int = 0  # Tenths of a dB, used in manual mode
    bias_tee: bool = False
    direct_sampling: str = "off"  # "off", "on" or "on_swap"
    # RTL-SDR Blog: offset tuning requests switch the bias tee
    offset_tuning_bias_tee: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate all configuration fields."""
        if self.device_index < 0:
            raise ConfigValidationError(
                f"device_index must be non-negative, got {self.device_index}"
            )
        if self.ctrl_timeout_ms < 0:
            raise ConfigValidationError(
                f"ctrl_timeout_ms must be non-negative, got {self.ctrl_timeout_ms}"
            )
        if self.bulk_timeout_ms < 0:
            raise ConfigValidationError(
                f"bulk_timeout_ms must be non-negative, got {self.bulk_timeout_ms}"
            )
        if self.xtal_freq and not (MIN_RTL_XTAL_FREQ <= self.xtal_freq <= MAX_RTL_XTAL_FREQ):
            raise ConfigValidationError(
                f"xtal_freq must be 0 or between {MIN_RTL_XTAL_FREQ} and "
                f"{MAX_RTL_XTAL_FREQ} Hz, got {self.xtal_freq}"
            )
        if self.tuner_xtal_freq < 0:
            raise ConfigValidationError(
                f"tuner_xtal_freq must be non-negative, got {self.tuner_xtal_freq}"
            )
        if self.center_freq < 0:
            raise ConfigValidationError(
                f"center_freq must be non-negative, got {self.center_freq}"
            )
        if not is_valid_sample_rate(self.sample_rate):
            raise ConfigValidationError(
                f"sample_rate must be in (225 kHz, 300 kHz] or (900 kHz, 3.2 MHz], "
                f"got {self.sample_rate}"
            )
        if self.bandwidth < 0:
            raise ConfigValidationError(
                f"bandwidth must be non-negative, got {self.bandwidth}"
            )
        if not (-1000 <= self.ppm_correction <= 1000):
            raise ConfigValidationError(
                f"ppm_correction must be between -1000 and 1000, got {self.ppm_correction}"
            )
        if self.gain_mode not in ("auto", "manual"):
            raise ConfigValidationError(
                f"gain_mode must be 'auto' or 'manual', got {self.gain_mode}"
            )
        if self.direct_sampling not in ("off", "on", "on_swap"):
            raise ConfigValidationError(
                f"direct_sampling must be 'off', 'on' or 'on_swap', got {self.direct_sampling}"
            )

    @property
    def direct_sampling_mode(self) -> DirectSamplingMode:
        """Get direct_sampling as an enum."""
        return DirectSamplingMode.from_str(self.direct_sampling)

    @property
    def tuner_gain(self) -> TunerGain:
        """Get the configured tuner gain."""
        if self.gain_mode == "auto":
            return TunerGain.automatic()
        return TunerGain.manual(self.gain)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DriverConfig":
        """Create configuration from dictionary."""
        return cls(**data)

    def save(self, path: str) -> bool:
        """Save configuration to JSON file.

        Args:
            path: File path to save configuration to

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Configuration saved to {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save configuration to {path}: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize configuration: {e}")
            return False

    @classmethod
    def load(cls, path: str) -> Optional["DriverConfig"]:
        """Load configuration from JSON file.

        Args:
            path: File path to load configuration from

        Returns:
            DriverConfig instance or None if loading failed
        """
        try:
            with open(path, "r") as f:
                data = json.load(f)
            config = cls.from_dict(data)
            logger.info(f"Configuration loaded from {path}")
            return config
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {path}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in configuration file {path}: {e}")
            return None
        except OSError as e:
            logger.error(f"Failed to read configuration from {path}: {e}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid configuration format in {path}: {e}")
            return None

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get default configuration file path."""
        config_dir = Path.home() / ".config" / "rtlsdr_driver"
        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.json"

    def save_default(self) -> bool:
        """Save to default configuration path."""
        return self.save(str(self.get_default_config_path()))

    @classmethod
    def load_default(cls) -> "DriverConfig":
        """Load from default configuration path, or create new if not found or invalid."""
        path = cls.get_default_config_path()
        if path.exists():
            config = cls.load(str(path))
            if config is not None:
                return config
            logger.warning("Using default configuration due to load failure")
        return cls()


# Preset configurations for common use cases
PRESETS: Dict[str, DriverConfig] = {
    # Wideband FM broadcast
    "fm_broadcast": DriverConfig(
        center_freq=100_100_000,
        sample_rate=2_048_000,
        bandwidth=200_000,
    ),
    # ADS-B at 1090 MHz, R820T maximum gain
    "adsb": DriverConfig(
        center_freq=1_090_000_000,
        sample_rate=2_000_000,
        gain_mode="manual",
        gain=496,
    ),
    # HF through the Q-branch ADC (RTL-SDR Blog V3 and similar)
    "hf_direct": DriverConfig(
        center_freq=7_100_000,
        sample_rate=1_024_000,
        direct_sampling="on_swap",
    ),
}


def get_preset(name: str) -> Optional[DriverConfig]:
    """Get a copy of a preset configuration by name."""
    preset = PRESETS.get(name)
    if preset is None:
        return None
    return replace(preset)


def list_presets() -> List[str]:
    """List available preset names."""
    return list(PRESETS.keys())
