"""
RTL2832U protocol driver.

Replays the vendor register protocol to bring up the demodulator, detect
and drive the tuner, and configure frequency, sample rate, correction,
FIR filter, direct sampling and GPIOs.

Every public method holds a reentrant lock for its whole duration, so
operations that retune internally (sample rate, correction, bandwidth,
direct sampling) can call back into the public API from the same thread
while other threads wait.
"""

import dataclasses
import logging
from contextlib import contextmanager
from threading import RLock
from typing import Iterator, List, Optional, Sequence

from ..devices.registers import (
    DEMOD_CTL,
    DEMOD_CTL_1,
    EEPROM_SIZE,
    GPD,
    GPO,
    GPOE,
    USB_EPA_CTL,
    USB_EPA_MAXPKT,
    USB_SYSCTL,
    Block,
    RegisterBus,
)
from ..tuners.base import Tuner, TunerGain, TunerInfo
from ..tuners.registry import (
    KNOWN_TUNERS,
    TunerDescriptor,
    TunerRegistry,
    get_tuner_registry,
    is_r82xx,
)
from ..utils.conversions import freq_to_str, sample_rate_to_str
from .exceptions import (
    FatalInitializationError,
    InvalidArgumentError,
    ProtocolError,
    TransportError,
)
from .fir import DEFAULT_FIR, FIR_PACKED_LEN, pack_fir
from .state import DirectSamplingMode, InitState, TuningState
from .tuning import (
    MAX_RTL_XTAL_FREQ,
    MIN_RTL_XTAL_FREQ,
    compute_resampler,
    corrected_freq,
    freq_correction_registers,
    if_freq_registers,
    is_valid_sample_rate,
)

logger = logging.getLogger(__name__)

INTERFACE_ID = 0
BIAS_TEE_GPIO = 0

# I2C repeater control values for demod(1, 0x01)
_I2C_REPEATER_ON = 0x18
_I2C_REPEATER_OFF = 0x10


class RtlSdrDriver:
    """
    Control-plane driver for one RTL2832U session.

    Example:
        >>> driver = RtlSdrDriver(bus)
        >>> driver.init()
        >>> driver.set_sample_rate(2_048_000)
        >>> driver.set_center_freq(100_000_000)
    """

    def __init__(
        self,
        bus: RegisterBus,
        tuner_registry: Optional[TunerRegistry] = None,
        known_tuners: Sequence[TunerDescriptor] = KNOWN_TUNERS,
        offset_tuning_bias_tee: bool = False,
    ):
        """
        Initialize the driver.

        Args:
            bus: Register access for the opened device
            tuner_registry: Tuner driver factories (process-wide registry if None)
            known_tuners: Detection table, probed in order
            offset_tuning_bias_tee: Map offset tuning requests to the bias tee
        """
        self._bus = bus
        self._registry = tuner_registry if tuner_registry is not None else get_tuner_registry()
        self._known_tuners = tuple(known_tuners)
        self._offset_tuning_bias_tee = offset_tuning_bias_tee
        self._state = TuningState()
        self._lock = RLock()

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> TuningState:
        """Get a snapshot of the tuning state."""
        with self._lock:
            return dataclasses.replace(
                self._state, fir_coefficients=list(self._state.fir_coefficients)
            )

    @property
    def init_state(self) -> InitState:
        """Get the session bring-up state."""
        with self._lock:
            return self._state.init_state

    @property
    def tuner(self) -> Tuner:
        """Get the active tuner driver."""
        with self._lock:
            return self._state.tuner

    @property
    def tuner_info(self) -> TunerInfo:
        """Get the active tuner identity."""
        with self._lock:
            return self._state.tuner.get_info()

    # =========================================================================
    # Bring-up
    # =========================================================================

    def init(self) -> None:
        """
        Bring the device from unclaimed to ready.

        Raises:
            ProtocolError: If the session was already initialized
            TransportError: On any USB failure during bring-up
            FatalInitializationError: If no supported tuner is found
        """
        with self._lock:
            if self._state.init_state != InitState.UNCLAIMED:
                raise ProtocolError(
                    f"Session already initialized ({self._state.init_state.name})"
                )

            self._bus.claim_interface(INTERFACE_ID)
            self._bus.test_write()
            self._advance(InitState.INTERFACE_CLAIMED)

            self._init_baseband()
            self._advance(InitState.BASEBAND_INITIALIZED)

            with self._i2c_repeater():
                tuner_id = self.search_tuner()
                if tuner_id is None:
                    logger.error("Failed to find tuner, aborting")
                    raise FatalInitializationError("No supported tuner found")
                logger.info(f"Got tuner ID {tuner_id}")

                tuner = self._registry.create(tuner_id, self._bus)
                if tuner is None:
                    logger.error(f"No driver registered for tuner '{tuner_id}'")
                    raise FatalInitializationError(f"Unable to find driver for tuner '{tuner_id}'")
                self._state.tuner = tuner
                self._advance(InitState.TUNER_DETECTED)

                # Use the RTL clock value by default
                self._state.tuner_crystal_hz = self._state.crystal_hz
                tuner.set_xtal_freq(self.get_tuner_xtal_freq())

                # Disable Zero-IF mode
                self._bus.demod_write_reg(1, 0xB1, 0x1A, 1)
                # Only enable In-phase ADC input
                self._bus.demod_write_reg(0, 0x08, 0x4D, 1)
                self.set_if_freq(tuner.get_info().if_freq)
                # Enable spectrum inversion
                self._bus.demod_write_reg(1, 0x15, 0x01, 1)

                self._read_eeprom_flags()

                logger.info("Init tuner")
                tuner.init()
                self._advance(InitState.TUNER_INITIALIZED)

            self._advance(InitState.READY)
            logger.info("Init complete")

    def _advance(self, new_state: InitState) -> None:
        logger.debug(f"Init state {self._state.init_state.name} -> {new_state.name}")
        self._state.init_state = new_state

    def _init_baseband(self) -> None:
        """Program the demodulator power-on register sequence."""
        bus = self._bus

        # Initialize USB
        bus.write_reg(Block.USB, USB_SYSCTL, 0x09, 1)
        bus.write_reg(Block.USB, USB_EPA_MAXPKT, 0x0002, 2)
        bus.write_reg(Block.USB, USB_EPA_CTL, 0x1002, 2)

        # Power-on demod
        bus.write_reg(Block.SYS, DEMOD_CTL_1, 0x22, 1)
        bus.write_reg(Block.SYS, DEMOD_CTL, 0xE8, 1)

        # Reset demod (bit 3, soft_rst)
        bus.reset_demod()

        # Disable spectrum inversion and adjust channel rejection
        bus.demod_write_reg(1, 0x15, 0x00, 1)
        bus.demod_write_reg(1, 0x16, 0x0000, 2)

        # Clear DDC shift and IF registers
        for i in range(6):
            bus.demod_write_reg(1, 0x16 + i, 0x00, 1)

        self.set_fir(DEFAULT_FIR)

        # Enable SDR mode, disable DAGC (bit 5)
        bus.demod_write_reg(0, 0x19, 0x05, 1)

        # Init FSM state-holding register
        bus.demod_write_reg(1, 0x93, 0xF0, 1)
        bus.demod_write_reg(1, 0x94, 0x0F, 1)

        # Disable AGC (en_dagc, bit 0)
        bus.demod_write_reg(1, 0x11, 0x00, 1)

        # Disable RF and IF AGC loop
        bus.demod_write_reg(1, 0x04, 0x00, 1)

        # Disable PID filter
        bus.demod_write_reg(0, 0x61, 0x60, 1)

        # opt_adc_iq = 0, default ADC_I/ADC_Q datapath
        bus.demod_write_reg(0, 0x06, 0x80, 1)

        # Enable Zero-IF mode, DC cancellation, and IQ estimation/compensation
        bus.demod_write_reg(1, 0xB1, 0x1B, 1)

        # Disable 4.096 MHz clock output on pin TP_CK0
        bus.demod_write_reg(0, 0x0D, 0x83, 1)

    def _read_eeprom_flags(self) -> None:
        """Decode the RTL-SDR Blog override bits from EEPROM byte 7."""
        eeprom = self._bus.read_eeprom(0, EEPROM_SIZE)
        flags = eeprom[7]
        # IR-endpoint bit cleared (default 1) forces the bias tee on
        self._state.force_bias_tee = not (flags & 0x02)
        # Remote-wakeup bit set (default 0) forces direct sampling
        self._state.force_direct_sampling = bool(flags & 0x01)
        if self._state.force_bias_tee:
            logger.info("EEPROM forces bias tee on")
        if self._state.force_direct_sampling:
            logger.info("EEPROM forces direct sampling (swapped)")

    def deinit_baseband(self) -> None:
        """Power down the tuner, then the demodulator and ADCs."""
        with self._lock:
            if self._state.init_state == InitState.UNCLAIMED:
                return
            with self._i2c_repeater():
                self._state.tuner.exit()

            # Power-off demodulator and ADCs
            self._bus.write_reg(Block.SYS, DEMOD_CTL, 0x20, 1)
            logger.info("Demodulator powered off")

    def search_tuner(self, known_tuners: Optional[Sequence[TunerDescriptor]] = None) -> Optional[str]:
        """
        Probe the I2C bus for a known tuner.

        The I2C repeater must be enabled by the caller. Read failures for a
        candidate are logged and the next candidate is tried.

        Args:
            known_tuners: Detection table (driver default if None)

        Returns:
            Id of the first matching descriptor, or None
        """
        table = self._known_tuners if known_tuners is None else known_tuners
        with self._lock:
            for desc in table:
                logger.debug(
                    f"Probing I2C address {desc.i2c_addr:#04x} "
                    f"checking address {desc.check_addr:#04x}"
                )
                try:
                    value = self._bus.i2c_read_reg(desc.i2c_addr, desc.check_addr)
                except TransportError as e:
                    logger.warning(f"Reading {desc.id} check register failed, continuing: {e}")
                    continue
                if value == desc.check_val:
                    return desc.id
                logger.debug(f"Expected {desc.check_val:#04x}, got {value:#04x}")
        return None

    @contextmanager
    def _i2c_repeater(self) -> Iterator[None]:
        """Enable the I2C repeater for the enclosed block; always disables it."""
        self._bus.demod_write_reg(1, 0x01, _I2C_REPEATER_ON, 1)
        try:
            yield
        except BaseException:
            # Keep the error from the enclosed block if disabling also fails
            try:
                self._bus.demod_write_reg(1, 0x01, _I2C_REPEATER_OFF, 1)
            except TransportError as e:
                logger.error(f"Failed to disable I2C repeater: {e}")
            raise
        self._bus.demod_write_reg(1, 0x01, _I2C_REPEATER_OFF, 1)

    # =========================================================================
    # Frequency
    # =========================================================================

    def get_center_freq(self) -> int:
        """Get the last commanded center frequency in Hz."""
        with self._lock:
            return self._state.center_freq_hz

    def set_center_freq(self, freq: int) -> None:
        """
        Tune to freq Hz.

        In direct sampling mode the frequency is programmed as the DDC IF;
        otherwise the tuner's LO is moved.
        """
        freq = int(freq)
        with self._lock:
            if self._state.direct_sampling_mode != DirectSamplingMode.OFF:
                self.set_if_freq(freq)
            else:
                with self._i2c_repeater():
                    # offset_freq is reserved for LO offset tuning, currently always 0
                    self._state.tuner.set_frequency(freq - self._state.offset_freq_hz)
            self._state.center_freq_hz = freq
            logger.debug(f"Center frequency {freq_to_str(freq)}")

    def set_if_freq(self, freq: int) -> None:
        """Program the demodulator DDC frequency (nominal crystal reference)."""
        with self._lock:
            high, mid, low = if_freq_registers(int(freq), self._state.crystal_hz)
            self._bus.demod_write_reg(1, 0x19, high, 1)
            self._bus.demod_write_reg(1, 0x1A, mid, 1)
            self._bus.demod_write_reg(1, 0x1B, low, 1)

    # =========================================================================
    # Sample rate and bandwidth
    # =========================================================================

    def get_sample_rate(self) -> int:
        """Get the achieved sample rate in Hz."""
        with self._lock:
            return self._state.sample_rate_hz

    def set_sample_rate(self, rate: int) -> None:
        """
        Configure the resampler for rate samples per second.

        The stored rate is the exact hardware-achievable value, which may
        differ slightly from the request.

        Raises:
            InvalidArgumentError: If rate is outside the resampler envelope
        """
        rate = int(rate)
        with self._lock:
            if not is_valid_sample_rate(rate):
                raise InvalidArgumentError(f"Invalid sample rate: {rate} Hz")

            setting = compute_resampler(self._state.crystal_hz, rate)
            logger.debug(
                f"set_sample_rate: rate: {rate}, xtal: {self._state.crystal_hz}, "
                f"rsamp_ratio: {setting.ratio:#x}, real_ratio: {setting.real_ratio:#x}"
            )
            if setting.real_rate != rate:
                logger.info(f"Exact sample rate is {setting.real_rate} Hz")
            self._state.sample_rate_hz = setting.real_rate

            # Configure tuner
            bandwidth = self._state.bandwidth_hz or self._state.sample_rate_hz
            with self._i2c_repeater():
                self._state.tuner.set_bandwidth(bandwidth, self._state.sample_rate_hz)

            # Bandwidth changes move the R82xx IF
            if is_r82xx(self._state.tuner.get_info().id):
                self.set_if_freq(self._state.tuner.get_if_freq())
                self.set_center_freq(self._state.center_freq_hz)

            self._bus.demod_write_reg(1, 0x9F, setting.high_word, 2)
            self._bus.demod_write_reg(1, 0xA1, setting.low_word, 2)

            self.set_sample_freq_correction(self._state.ppm_correction)

            # Reset demod (bit 3, soft_rst)
            self._bus.demod_write_reg(1, 0x01, 0x14, 1)
            self._bus.demod_write_reg(1, 0x01, 0x10, 1)

            # Recalculate offset frequency if offset tuning is enabled
            if self._state.offset_freq_hz != 0:
                self.set_offset_tuning(True)

            logger.info(f"Sample rate {sample_rate_to_str(self._state.sample_rate_hz)}")

    def set_tuner_bandwidth(self, bandwidth: int) -> None:
        """
        Set the tuner IF bandwidth.

        Args:
            bandwidth: Bandwidth in Hz; 0 follows the sample rate
        """
        with self._lock:
            bandwidth = int(bandwidth)
            with self._i2c_repeater():
                self._state.tuner.set_bandwidth(
                    bandwidth or self._state.sample_rate_hz, self._state.sample_rate_hz
                )

            if is_r82xx(self._state.tuner.get_info().id):
                self.set_if_freq(self._state.tuner.get_if_freq())
                self.set_center_freq(self._state.center_freq_hz)

            self._state.bandwidth_hz = bandwidth

    # =========================================================================
    # Frequency correction and crystal
    # =========================================================================

    def get_freq_correction(self) -> int:
        """Get the frequency correction in PPM."""
        with self._lock:
            return self._state.ppm_correction

    def set_freq_correction(self, ppm: int) -> None:
        """
        Apply a crystal error correction in parts per million.

        Setting the current value again performs no register access.
        """
        ppm = int(ppm)
        with self._lock:
            if self._state.ppm_correction == ppm:
                return
            self._state.ppm_correction = ppm
            self.set_sample_freq_correction(ppm)

            # Read corrected clock value into tuner
            self._state.tuner.set_xtal_freq(self.get_tuner_xtal_freq())

            # Retune to apply new correction value
            self.set_center_freq(self._state.center_freq_hz)
            logger.info(f"Frequency correction {ppm} ppm")

    def set_sample_freq_correction(self, ppm: int) -> None:
        """Write the 14-bit resampler clock correction for ppm."""
        with self._lock:
            low, high = freq_correction_registers(int(ppm))
            self._bus.demod_write_reg(1, 0x3F, low, 1)
            self._bus.demod_write_reg(1, 0x3E, high, 1)

    def get_xtal_freq(self) -> int:
        """Get the PPM-corrected demodulator crystal frequency in Hz."""
        with self._lock:
            return corrected_freq(self._state.crystal_hz, self._state.ppm_correction)

    def get_tuner_xtal_freq(self) -> int:
        """Get the PPM-corrected tuner crystal frequency in Hz."""
        with self._lock:
            return corrected_freq(self._state.tuner_crystal_hz, self._state.ppm_correction)

    def set_xtal_freq(self, rtl_freq: int, tuner_freq: int = 0) -> None:
        """
        Override the crystal reference frequencies.

        Args:
            rtl_freq: Demodulator crystal in Hz (0 keeps the current value)
            tuner_freq: Tuner crystal in Hz (0 follows the demodulator crystal)

        Raises:
            InvalidArgumentError: If rtl_freq is outside 28.8 MHz +/- 1 kHz
        """
        rtl_freq = int(rtl_freq)
        tuner_freq = int(tuner_freq)
        with self._lock:
            if rtl_freq > 0 and not MIN_RTL_XTAL_FREQ <= rtl_freq <= MAX_RTL_XTAL_FREQ:
                raise InvalidArgumentError(
                    f"set_xtal_freq error: rtl_freq {rtl_freq} out of bounds"
                )

            if rtl_freq > 0 and self._state.crystal_hz != rtl_freq:
                self._state.crystal_hz = rtl_freq
                # Update xtal-dependent settings
                if self._state.sample_rate_hz != 0:
                    self.set_sample_rate(self._state.sample_rate_hz)

            if self._state.tuner.get_xtal_freq() != tuner_freq:
                self._state.tuner_crystal_hz = tuner_freq or self._state.crystal_hz

                # Read corrected clock value into tuner
                self._state.tuner.set_xtal_freq(self.get_tuner_xtal_freq())

                # Update xtal-dependent settings
                if self._state.center_freq_hz != 0:
                    self.set_center_freq(self._state.center_freq_hz)

    # =========================================================================
    # FIR filter
    # =========================================================================

    def set_fir(self, coefficients: Sequence[int]) -> None:
        """
        Load the demodulator channel filter.

        Raises:
            ValueError: If a coefficient does not fit its field
        """
        packed = pack_fir(coefficients)
        with self._lock:
            for i in range(FIR_PACKED_LEN):
                self._bus.demod_write_reg(1, 0x1C + i, packed[i], 1)
            self._state.fir_coefficients = list(coefficients)

    # =========================================================================
    # Gain
    # =========================================================================

    def get_tuner_gains(self) -> List[int]:
        """Get the tuner's supported gains in tenths of a dB."""
        with self._lock:
            return list(self._state.tuner.get_gains())

    def set_tuner_gain(self, gain: TunerGain) -> None:
        """Apply an automatic or manual tuner gain."""
        with self._lock:
            with self._i2c_repeater():
                self._state.tuner.set_gain(gain)
            logger.debug(f"Tuner gain {gain}")

    def set_testmode(self, on: bool) -> None:
        """Enable or disable the demodulator's counter test pattern."""
        with self._lock:
            self._bus.demod_write_reg(0, 0x19, 0x03 if on else 0x05, 1)

    # =========================================================================
    # Direct sampling and offset tuning
    # =========================================================================

    def get_direct_sampling(self) -> DirectSamplingMode:
        """Get the current direct sampling mode."""
        with self._lock:
            return self._state.direct_sampling_mode

    def set_direct_sampling(self, mode: DirectSamplingMode) -> None:
        """
        Switch between tuner and direct ADC sampling.

        An EEPROM override forces OnSwap regardless of the request.
        """
        with self._lock:
            if self._state.force_direct_sampling and mode != DirectSamplingMode.ON_SWAP:
                logger.warning(f"EEPROM forces direct sampling, ignoring request for {mode.name}")
                mode = DirectSamplingMode.ON_SWAP

            if mode in (DirectSamplingMode.ON, DirectSamplingMode.ON_SWAP):
                with self._i2c_repeater():
                    self._state.tuner.exit()

                # Disable Zero-IF mode
                self._bus.demod_write_reg(1, 0xB1, 0x1A, 1)
                # Disable spectrum inversion
                self._bus.demod_write_reg(1, 0x15, 0x00, 1)
                # Only enable in-phase ADC input
                self._bus.demod_write_reg(0, 0x08, 0x4D, 1)

                # Swap I and Q ADC to select the other input
                if mode == DirectSamplingMode.ON_SWAP:
                    self._bus.demod_write_reg(0, 0x06, 0x90, 1)
                    logger.info("Enabled direct sampling mode: ON (swapped)")
                else:
                    self._bus.demod_write_reg(0, 0x06, 0x80, 1)
                    logger.info("Enabled direct sampling mode: ON")
                self._state.direct_sampling_mode = mode
            else:
                with self._i2c_repeater():
                    self._state.tuner.init()

                if is_r82xx(self._state.tuner.get_info().id):
                    self.set_if_freq(self._state.tuner.get_if_freq())
                    # Enable spectrum inversion
                    self._bus.demod_write_reg(1, 0x15, 0x01, 1)
                else:
                    self.set_if_freq(0)
                    # Enable in-phase + quadrature ADC input
                    self._bus.demod_write_reg(0, 0x08, 0xCD, 1)
                    # Enable Zero-IF mode
                    self._bus.demod_write_reg(1, 0xB1, 0x1B, 1)

                # opt_adc_iq = 0, default ADC_I/ADC_Q datapath
                self._bus.demod_write_reg(0, 0x06, 0x80, 1)
                logger.info("Disabled direct sampling mode")
                self._state.direct_sampling_mode = DirectSamplingMode.OFF

            self.set_center_freq(self._state.center_freq_hz)

    def set_offset_tuning(self, enable: bool) -> None:
        """
        Offset tuning request.

        R82xx tuners do not use offset tuning. With the RTL-SDR Blog
        convention enabled the request drives the bias tee instead, so
        software without bias tee support can toggle it.
        """
        with self._lock:
            if self._offset_tuning_bias_tee:
                self.set_gpio(BIAS_TEE_GPIO, enable)
                return
            logger.debug("Offset tuning not supported by this tuner, ignoring")

    # =========================================================================
    # GPIO and bias tee
    # =========================================================================

    def set_bias_tee(self, on: bool) -> None:
        """Switch antenna power on GPIO 0."""
        self.set_gpio(BIAS_TEE_GPIO, on)

    def set_gpio(self, pin: int, on: bool) -> None:
        """Configure pin as an output and drive it."""
        with self._lock:
            # EEPROM override: the bias tee may never be switched off
            if self._state.force_bias_tee and not on:
                logger.warning("EEPROM forces bias tee on, ignoring off request")
                on = True
            self.set_gpio_output(pin)
            self.set_gpio_bit(pin, on)

    def set_gpio_output(self, pin: int) -> None:
        """Clear the pin's direction-disable bit and enable its output."""
        mask = 1 << pin
        with self._lock:
            value = self._bus.read_reg(Block.SYS, GPD, 1)
            self._bus.write_reg(Block.SYS, GPD, value & ~mask & 0xFF, 1)
            value = self._bus.read_reg(Block.SYS, GPOE, 1)
            self._bus.write_reg(Block.SYS, GPOE, value | mask, 1)

    def set_gpio_bit(self, pin: int, on: bool) -> None:
        """Set or clear the pin's output value bit."""
        mask = 1 << pin
        with self._lock:
            value = self._bus.read_reg(Block.SYS, GPO, 1)
            value = value | mask if on else value & ~mask & 0xFF
            self._bus.write_reg(Block.SYS, GPO, value, 1)

    # =========================================================================
    # Streaming buffer
    # =========================================================================

    def reset_buffer(self) -> None:
        """Flush the USB endpoint FIFO."""
        with self._lock:
            self._bus.write_reg(Block.USB, USB_EPA_CTL, 0x1002, 2)
            self._bus.write_reg(Block.USB, USB_EPA_CTL, 0x0000, 2)

    def read_sync(self, buffer: bytearray) -> int:
        """
        Read raw interleaved I/Q bytes into buffer.

        Returns:
            Number of bytes read
        """
        return self._bus.bulk_transfer(buffer)
