"""Shared fakes for driver tests (no hardware needed)."""

from typing import Dict, List, Optional, Tuple

import pytest

from rtlsdr_driver.core.driver import RtlSdrDriver
from rtlsdr_driver.core.exceptions import TransportError
from rtlsdr_driver.devices.registers import EEPROM_SIZE, USB_SYSCTL, Block
from rtlsdr_driver.tuners.base import Tuner, TunerGain, TunerInfo
from rtlsdr_driver.tuners.registry import (
    R820T_I2C_ADDR,
    R820T_TUNER_ID,
    R828D_TUNER_ID,
    R82XX_IF_FREQ,
    TunerRegistry,
)

# EEPROM byte 7 with the IR bit set and remote wakeup clear: no overrides
EEPROM_NO_OVERRIDES = 0x02


class FakeRegisterBus:
    """In-memory register bus recording every access in order."""

    def __init__(
        self,
        i2c_regs: Optional[Dict[Tuple[int, int], int]] = None,
        eeprom_flags: int = EEPROM_NO_OVERRIDES,
    ):
        self.ops: List[tuple] = []
        self.regs: Dict[Tuple[int, int], int] = {}
        self.demod_regs: Dict[Tuple[int, int], int] = {}
        self.i2c_regs = dict(i2c_regs or {})
        self.eeprom = bytearray(EEPROM_SIZE)
        self.eeprom[7] = eeprom_flags
        self.bulk_data = b""

    def claim_interface(self, interface: int = 0) -> None:
        self.ops.append(("claim", interface))

    def test_write(self) -> None:
        self.write_reg(Block.USB, USB_SYSCTL, 0x09, 1)

    def read_reg(self, block: int, addr: int, length: int) -> int:
        self.ops.append(("read", block, addr, length))
        return self.regs.get((block, addr), 0)

    def write_reg(self, block: int, addr: int, value: int, length: int) -> None:
        self.ops.append(("write", block, addr, value, length))
        self.regs[(block, addr)] = value

    def demod_read_reg(self, page: int, addr: int, length: int) -> int:
        return self.demod_regs.get((page, addr), 0)

    def demod_write_reg(self, page: int, addr: int, value: int, length: int) -> None:
        self.ops.append(("demod", page, addr, value, length))
        self.demod_regs[(page, addr)] = value

    def reset_demod(self) -> None:
        self.demod_write_reg(1, 0x01, 0x14, 1)
        self.demod_write_reg(1, 0x01, 0x10, 1)

    def i2c_read_reg(self, i2c_addr: int, reg: int) -> int:
        self.ops.append(("i2c_read", i2c_addr, reg))
        if (i2c_addr, reg) not in self.i2c_regs:
            raise TransportError(f"I2C read at {i2c_addr:#04x} not acknowledged")
        return self.i2c_regs[(i2c_addr, reg)]

    def i2c_write_reg(self, i2c_addr: int, reg: int, value: int) -> None:
        self.ops.append(("i2c_write", i2c_addr, reg, value))
        self.i2c_regs[(i2c_addr, reg)] = value

    def read_eeprom(self, offset: int, length: int) -> bytes:
        self.ops.append(("eeprom", offset, length))
        return bytes(self.eeprom[offset:offset + length])

    def bulk_transfer(self, buffer: bytearray) -> int:
        count = min(len(buffer), len(self.bulk_data))
        buffer[:count] = self.bulk_data[:count]
        return count

    def demod_writes(self) -> List[Tuple[int, int, int]]:
        """(page, addr, value) of every demod write, in order."""
        return [(op[1], op[2], op[3]) for op in self.ops if op[0] == "demod"]

    def writes(self) -> List[tuple]:
        """Every write of any kind, in order."""
        return [op for op in self.ops if op[0] in ("write", "demod", "i2c_write")]


class FakeTuner(Tuner):
    """Tuner recording calls; IF and gains are configurable."""

    GAINS = [0, 9, 14, 27, 37, 77, 87, 125, 144, 157, 166, 197, 207, 229, 254, 280,
             297, 328, 338, 364, 372, 386, 402, 421, 434, 439, 445, 480, 496]

    def __init__(self, bus=None, tuner_id: str = R820T_TUNER_ID, if_freq: int = R82XX_IF_FREQ):
        self.bus = bus
        self.tuner_id = tuner_id
        self.if_freq = if_freq
        self.xtal = 0
        self.calls: List[tuple] = []

    def init(self) -> None:
        self.calls.append(("init",))

    def exit(self) -> None:
        self.calls.append(("exit",))

    def set_frequency(self, freq: int) -> None:
        self.calls.append(("set_frequency", freq))

    def set_bandwidth(self, bandwidth: int, sample_rate: int) -> None:
        self.calls.append(("set_bandwidth", bandwidth, sample_rate))

    def set_gain(self, gain: TunerGain) -> None:
        self.calls.append(("set_gain", gain))

    def get_gains(self) -> List[int]:
        return list(self.GAINS)

    def set_xtal_freq(self, freq: int) -> None:
        self.calls.append(("set_xtal_freq", freq))
        self.xtal = freq

    def get_xtal_freq(self) -> int:
        return self.xtal

    def get_info(self) -> TunerInfo:
        return TunerInfo(id=self.tuner_id, if_freq=self.if_freq)

    def get_if_freq(self) -> int:
        return self.if_freq

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def tuner_registry():
    """Registry with fake drivers for the R82xx family."""
    registry = TunerRegistry()
    registry.register(R820T_TUNER_ID, lambda bus: FakeTuner(bus, R820T_TUNER_ID))
    registry.register(R828D_TUNER_ID, lambda bus: FakeTuner(bus, R828D_TUNER_ID))
    return registry


@pytest.fixture
def bus():
    """Bus with an R820T answering on I2C."""
    return FakeRegisterBus(i2c_regs={(R820T_I2C_ADDR, 0x00): 0x69})


@pytest.fixture
def driver(bus, tuner_registry):
    """Initialized driver; the recorded ops are cleared after bring-up."""
    drv = RtlSdrDriver(bus, tuner_registry=tuner_registry)
    drv.init()
    bus.ops.clear()
    return drv
