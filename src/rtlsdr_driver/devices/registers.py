"""
Register access primitives for the RTL2832U.

Every register in the chip is reached through vendor control requests on
endpoint 0. The block selector travels in wIndex (bit 4 set for writes);
demodulator registers are paged and addressed with (addr << 8) | 0x20.
Multi-byte writes are big-endian, reads are little-endian.
"""

import logging
from enum import IntEnum

from .transport import (
    CTRL_IN,
    CTRL_OUT,
    DEFAULT_BULK_TIMEOUT_MS,
    DEFAULT_CTRL_TIMEOUT_MS,
    UsbTransport,
)

logger = logging.getLogger(__name__)


class Block(IntEnum):
    """Memory block selectors."""

    DEMOD = 0
    USB = 1
    SYS = 2
    TUN = 3
    ROM = 4
    IR = 5
    IIC = 6


# USB block registers
USB_SYSCTL = 0x2000
USB_CTRL = 0x2010
USB_STAT = 0x2014
USB_EPA_CFG = 0x2144
USB_EPA_CTL = 0x2148
USB_EPA_MAXPKT = 0x2158
USB_EPA_MAXPKT_2 = 0x215A
USB_EPA_FIFO_CFG = 0x2160

# SYS block registers
DEMOD_CTL = 0x3000
GPO = 0x3001
GPI = 0x3002
GPOE = 0x3003
GPD = 0x3004
SYSINTE = 0x3005
SYSINTS = 0x3006
GP_CFG0 = 0x3007
GP_CFG1 = 0x3008
SYSINTE_1 = 0x3009
SYSINTS_1 = 0x300A
DEMOD_CTL_1 = 0x300B
IR_SUPPRESS = 0x3010

EEPROM_ADDR = 0xA0
EEPROM_SIZE = 256

BULK_ENDPOINT = 0x81

# Block index bit marking a write request
_WRITE_FLAG = 0x10


class RegisterBus:
    """
    Block-addressed register access on top of a USB transport.

    All methods are synchronous and raise TransportError on USB failure.
    """

    def __init__(
        self,
        transport: UsbTransport,
        ctrl_timeout_ms: int = DEFAULT_CTRL_TIMEOUT_MS,
        bulk_timeout_ms: int = DEFAULT_BULK_TIMEOUT_MS,
    ):
        self._transport = transport
        self.ctrl_timeout_ms = ctrl_timeout_ms
        self.bulk_timeout_ms = bulk_timeout_ms

    @property
    def transport(self) -> UsbTransport:
        """Get the underlying transport."""
        return self._transport

    def claim_interface(self, interface: int = 0) -> None:
        """Claim the USB interface carrying the control and bulk endpoints."""
        self._transport.claim_interface(interface)

    # =========================================================================
    # Raw array access
    # =========================================================================

    def read_array(self, block: int, addr: int, length: int) -> bytes:
        """Read length bytes starting at addr in the given block."""
        return self._transport.read_control(
            CTRL_IN, 0, addr, block << 8, length, self.ctrl_timeout_ms
        )

    def write_array(self, block: int, addr: int, data: bytes) -> int:
        """Write data starting at addr in the given block."""
        return self._transport.write_control(
            CTRL_OUT, 0, addr, (block << 8) | _WRITE_FLAG, bytes(data), self.ctrl_timeout_ms
        )

    # =========================================================================
    # Block registers
    # =========================================================================

    def read_reg(self, block: int, addr: int, length: int) -> int:
        """Read a 1 or 2 byte register."""
        data = self.read_array(block, addr, length)
        return int.from_bytes(data[:length], "little")

    def write_reg(self, block: int, addr: int, value: int, length: int) -> None:
        """Write a 1 or 2 byte register."""
        self.write_array(block, addr, _encode_value(value, length))

    # =========================================================================
    # Demodulator registers
    # =========================================================================

    def demod_read_reg(self, page: int, addr: int, length: int) -> int:
        """Read a paged demodulator register."""
        data = self._transport.read_control(
            CTRL_IN, 0, (addr << 8) | 0x20, page, length, self.ctrl_timeout_ms
        )
        return int.from_bytes(data[:length], "little")

    def demod_write_reg(self, page: int, addr: int, value: int, length: int) -> None:
        """Write a paged demodulator register, then issue the settling read."""
        self._transport.write_control(
            CTRL_OUT,
            0,
            (addr << 8) | 0x20,
            _WRITE_FLAG | page,
            _encode_value(value, length),
            self.ctrl_timeout_ms,
        )
        self.demod_read_reg(0x0A, 0x01, 1)

    def reset_demod(self) -> None:
        """Pulse the demodulator soft reset bit."""
        self.demod_write_reg(1, 0x01, 0x14, 1)
        self.demod_write_reg(1, 0x01, 0x10, 1)

    def test_write(self) -> None:
        """Harmless write used to confirm the control channel works."""
        self.write_reg(Block.USB, USB_SYSCTL, 0x09, 1)

    # =========================================================================
    # I2C bridge (requires the I2C repeater to be enabled)
    # =========================================================================

    def i2c_read_reg(self, i2c_addr: int, reg: int) -> int:
        """Read one register of an I2C device behind the bridge."""
        self.write_array(Block.IIC, i2c_addr, bytes([reg & 0xFF]))
        return self.read_array(Block.IIC, i2c_addr, 1)[0]

    def i2c_write_reg(self, i2c_addr: int, reg: int, value: int) -> None:
        """Write one register of an I2C device behind the bridge."""
        self.write_array(Block.IIC, i2c_addr, bytes([reg & 0xFF, value & 0xFF]))

    def i2c_read(self, i2c_addr: int, length: int) -> bytes:
        """Raw I2C read."""
        return self.read_array(Block.IIC, i2c_addr, length)

    def i2c_write(self, i2c_addr: int, data: bytes) -> int:
        """Raw I2C write."""
        return self.write_array(Block.IIC, i2c_addr, data)

    def read_eeprom(self, offset: int, length: int) -> bytes:
        """
        Read bytes from the configuration EEPROM.

        Args:
            offset: First byte to read
            length: Number of bytes

        Returns:
            EEPROM contents
        """
        if offset < 0 or length < 0 or offset + length > EEPROM_SIZE:
            raise ValueError(
                f"EEPROM range {offset}+{length} exceeds {EEPROM_SIZE} bytes"
            )
        self.write_array(Block.IIC, EEPROM_ADDR, bytes([offset]))
        data = bytearray()
        for _ in range(length):
            data += self.read_array(Block.IIC, EEPROM_ADDR, 1)[:1]
        return bytes(data)

    # =========================================================================
    # Sample data
    # =========================================================================

    def bulk_transfer(self, buffer: bytearray) -> int:
        """Read raw sample bytes from the bulk endpoint into buffer."""
        return self._transport.bulk_read(BULK_ENDPOINT, buffer, self.bulk_timeout_ms)


def _encode_value(value: int, length: int) -> bytes:
    """Encode a register value for a write (big-endian for 2 bytes)."""
    if length == 1:
        return bytes([value & 0xFF])
    return bytes([(value >> 8) & 0xFF, value & 0xFF])
