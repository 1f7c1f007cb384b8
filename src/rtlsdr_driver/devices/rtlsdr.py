"""
RTL-SDR receiver session.

Opens an RTL2832U-based dongle over USB, brings it up with the protocol
driver and exposes tuning controls plus synchronous sample reads.
Specifications:
    - Frequency: 24-1766 MHz (R820T), HF via direct sampling
    - Sample Rate: 225-300 kHz and 900 kHz-3.2 MS/s
    - ADC: 8-bit interleaved I/Q
    - RX Only
"""

import logging
from typing import List, Optional, Union

import numpy as np

from ..core.config import DriverConfig
from ..core.driver import RtlSdrDriver
from ..core.exceptions import ProtocolError, RtlSdrError
from ..core.state import DirectSamplingMode, InitState, TuningState
from ..tuners.base import TunerGain, TunerInfo
from ..tuners.registry import TunerRegistry
from ..utils.conversions import freq_to_str
from ..utils.iq import interleaved_u8_to_complex
from .base import DeviceInfo
from .registers import RegisterBus
from .transport import UsbTransport

logger = logging.getLogger(__name__)


class RtlSdr:
    """
    An open RTL-SDR session.

    Example:
        >>> with RtlSdr.open(0) as sdr:
        ...     sdr.set_sample_rate(2_048_000)
        ...     sdr.set_center_freq(100_000_000)
        ...     sdr.reset_buffer()
        ...     samples = sdr.read_samples(256 * 1024)
    """

    def __init__(self, transport: UsbTransport, driver: RtlSdrDriver):
        self._transport = transport
        self._driver = driver
        self._is_open = True

    @staticmethod
    def list_devices() -> List[DeviceInfo]:
        """List all attached RTL2832U receivers."""
        return UsbTransport.list_devices()

    @classmethod
    def open(
        cls,
        index: int = 0,
        config: Optional[DriverConfig] = None,
        tuner_registry: Optional[TunerRegistry] = None,
    ) -> "RtlSdr":
        """
        Open and initialize the receiver at index.

        Args:
            index: Device index among attached receivers
            config: Settings applied after bring-up (timeouts always used)
            tuner_registry: Tuner drivers (process-wide registry if None)

        Returns:
            Ready session

        Raises:
            TransportError: If the device cannot be opened or a transfer fails
            FatalInitializationError: If no supported tuner is found
        """
        settings = config if config is not None else DriverConfig(device_index=index)
        transport = UsbTransport.open(index)
        device = None
        try:
            bus = RegisterBus(
                transport,
                ctrl_timeout_ms=settings.ctrl_timeout_ms,
                bulk_timeout_ms=settings.bulk_timeout_ms,
            )
            driver = RtlSdrDriver(
                bus,
                tuner_registry=tuner_registry,
                offset_tuning_bias_tee=settings.offset_tuning_bias_tee,
            )
            driver.init()
            device = cls(transport, driver)
            if config is not None:
                device.apply_config(config)
        except Exception as e:
            logger.error(f"Failed to open RTL-SDR at index {index}: {e}")
            if device is not None:
                try:
                    device.driver.deinit_baseband()
                except RtlSdrError as deinit_error:
                    logger.warning(f"Error powering down device: {deinit_error}")
            transport.close()
            raise

        logger.info(f"Opened RTL-SDR device: {device.info.serial if device.info else index}")
        return device

    def close(self) -> None:
        """Power down the receiver and release the USB device."""
        if not self._is_open:
            return
        try:
            self._driver.deinit_baseband()
        except RtlSdrError as e:
            logger.warning(f"Error powering down device: {e}")
        finally:
            self._transport.close()
            self._is_open = False
            logger.info("RTL-SDR device closed")

    def __enter__(self) -> "RtlSdr":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _check_open(self) -> None:
        if not self._is_open:
            raise ProtocolError("Device is closed")

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def is_open(self) -> bool:
        """Check if the session is open."""
        return self._is_open

    @property
    def info(self) -> Optional[DeviceInfo]:
        """Get USB identity of the device."""
        return self._transport.info

    @property
    def tuner_info(self) -> TunerInfo:
        """Get the detected tuner's identity."""
        return self._driver.tuner_info

    @property
    def state(self) -> TuningState:
        """Get a snapshot of the tuning state."""
        return self._driver.state

    @property
    def init_state(self) -> InitState:
        """Get the session bring-up state."""
        return self._driver.init_state

    @property
    def driver(self) -> RtlSdrDriver:
        """Get the protocol driver."""
        return self._driver

    # =========================================================================
    # Configuration
    # =========================================================================

    def apply_config(self, config: DriverConfig) -> None:
        """
        Apply a configuration to the open session.

        Crystal and correction go first so the rate and frequency are
        computed against the corrected clock.
        """
        self._check_open()
        if config.xtal_freq or config.tuner_xtal_freq:
            self._driver.set_xtal_freq(config.xtal_freq, config.tuner_xtal_freq)
        self._driver.set_freq_correction(config.ppm_correction)

        mode = config.direct_sampling_mode
        if mode != self._driver.get_direct_sampling():
            self._driver.set_direct_sampling(mode)

        self._driver.set_sample_rate(config.sample_rate)
        if config.bandwidth:
            self._driver.set_tuner_bandwidth(config.bandwidth)
        self._driver.set_center_freq(config.center_freq)
        self._driver.set_tuner_gain(config.tuner_gain)

        self._driver.set_bias_tee(config.bias_tee)

        self._driver.reset_buffer()
        logger.info(
            f"Applied configuration: {freq_to_str(config.center_freq)}, "
            f"{self._driver.get_sample_rate()} S/s, gain {config.tuner_gain}"
        )

    # =========================================================================
    # Tuning
    # =========================================================================

    def get_center_freq(self) -> int:
        """Get center frequency in Hz."""
        self._check_open()
        return self._driver.get_center_freq()

    def set_center_freq(self, freq: int) -> None:
        """Set center frequency in Hz."""
        self._check_open()
        self._driver.set_center_freq(freq)

    def get_sample_rate(self) -> int:
        """Get the achieved sample rate in Hz."""
        self._check_open()
        return self._driver.get_sample_rate()

    def set_sample_rate(self, rate: int) -> None:
        """Set sample rate in Hz."""
        self._check_open()
        self._driver.set_sample_rate(rate)

    def get_freq_correction(self) -> int:
        """Get frequency correction in PPM."""
        self._check_open()
        return self._driver.get_freq_correction()

    def set_freq_correction(self, ppm: int) -> None:
        """Set frequency correction in PPM."""
        self._check_open()
        self._driver.set_freq_correction(ppm)

    def set_tuner_bandwidth(self, bandwidth: int) -> None:
        """Set tuner IF bandwidth in Hz (0 = automatic)."""
        self._check_open()
        self._driver.set_tuner_bandwidth(bandwidth)

    def get_xtal_freq(self) -> int:
        """Get corrected demodulator crystal frequency in Hz."""
        self._check_open()
        return self._driver.get_xtal_freq()

    def get_tuner_xtal_freq(self) -> int:
        """Get corrected tuner crystal frequency in Hz."""
        self._check_open()
        return self._driver.get_tuner_xtal_freq()

    def set_xtal_freq(self, rtl_freq: int, tuner_freq: int = 0) -> None:
        """Override crystal frequencies in Hz."""
        self._check_open()
        self._driver.set_xtal_freq(rtl_freq, tuner_freq)

    # =========================================================================
    # Gain and modes
    # =========================================================================

    def get_tuner_gains(self) -> List[int]:
        """Get supported tuner gains in tenths of a dB."""
        self._check_open()
        return self._driver.get_tuner_gains()

    def set_tuner_gain(self, gain: Union[TunerGain, int, str]) -> None:
        """
        Set tuner gain.

        Args:
            gain: TunerGain, "auto", or a manual gain in tenths of a dB
        """
        self._check_open()
        if isinstance(gain, str):
            if gain != "auto":
                raise ValueError(f"Invalid gain: {gain}. Use 'auto' or tenths of a dB")
            gain = TunerGain.automatic()
        elif not isinstance(gain, TunerGain):
            gain = TunerGain.manual(gain)
        self._driver.set_tuner_gain(gain)

    def set_testmode(self, on: bool) -> None:
        """Enable or disable the counter test pattern."""
        self._check_open()
        self._driver.set_testmode(on)

    def get_direct_sampling(self) -> DirectSamplingMode:
        """Get direct sampling mode."""
        self._check_open()
        return self._driver.get_direct_sampling()

    def set_direct_sampling(self, mode: Union[DirectSamplingMode, str]) -> None:
        """Set direct sampling mode ("off", "on", "on_swap" or enum)."""
        self._check_open()
        if isinstance(mode, str):
            mode = DirectSamplingMode.from_str(mode)
        self._driver.set_direct_sampling(mode)

    def set_bias_tee(self, on: bool) -> None:
        """Enable/disable antenna bias tee."""
        self._check_open()
        self._driver.set_bias_tee(on)
        logger.info(f"Bias tee {'enabled' if on else 'disabled'}")

    def set_offset_tuning(self, enable: bool) -> None:
        """Offset tuning request (bias tee on RTL-SDR Blog builds)."""
        self._check_open()
        self._driver.set_offset_tuning(enable)

    # =========================================================================
    # Samples
    # =========================================================================

    def reset_buffer(self) -> None:
        """Flush stale samples from the device FIFO."""
        self._check_open()
        self._driver.reset_buffer()

    def read_sync(self, buffer: bytearray) -> int:
        """Read raw I/Q bytes into buffer; returns the byte count."""
        self._check_open()
        return self._driver.read_sync(buffer)

    def read_bytes(self, num_bytes: int) -> bytes:
        """Read up to num_bytes raw interleaved I/Q bytes."""
        buffer = bytearray(num_bytes)
        count = self.read_sync(buffer)
        return bytes(buffer[:count])

    def read_samples(self, num_samples: int) -> np.ndarray:
        """
        Read complex samples.

        Args:
            num_samples: Number of I/Q pairs to request

        Returns:
            complex64 array normalized to [-1, 1]; may be shorter on a
            short transfer
        """
        return interleaved_u8_to_complex(self.read_bytes(2 * num_samples))
