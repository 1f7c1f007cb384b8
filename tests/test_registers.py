"""Tests for register bus wire encoding."""

from unittest.mock import MagicMock

import pytest

from rtlsdr_driver.core.exceptions import TransportError
from rtlsdr_driver.devices.registers import (
    BULK_ENDPOINT,
    DEMOD_CTL,
    EEPROM_ADDR,
    USB_EPA_CTL,
    USB_SYSCTL,
    Block,
    RegisterBus,
)
from rtlsdr_driver.devices.transport import CTRL_IN, CTRL_OUT


@pytest.fixture
def transport():
    """Mock transport returning one zero byte per read."""
    mock = MagicMock()
    mock.read_control.return_value = b"\x00"
    return mock


@pytest.fixture
def reg_bus(transport):
    return RegisterBus(transport)


class TestControlEncoding:
    """Test block register requests."""

    def test_request_types(self):
        """Test vendor request direction bytes."""
        assert CTRL_IN == 0xC0
        assert CTRL_OUT == 0x40

    def test_write_one_byte(self, reg_bus, transport):
        """Test a one byte write sets the write flag in wIndex."""
        reg_bus.write_reg(Block.USB, USB_SYSCTL, 0x09, 1)

        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, USB_SYSCTL, 0x0110, b"\x09", 300
        )

    def test_write_two_bytes_big_endian(self, reg_bus, transport):
        """Test two byte writes go out big-endian."""
        reg_bus.write_reg(Block.USB, USB_EPA_CTL, 0x1002, 2)

        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, USB_EPA_CTL, 0x0110, b"\x10\x02", 300
        )

    def test_read_two_bytes_little_endian(self, reg_bus, transport):
        """Test two byte reads are decoded little-endian."""
        transport.read_control.return_value = b"\x34\x12"

        assert reg_bus.read_reg(Block.SYS, DEMOD_CTL, 2) == 0x1234
        transport.read_control.assert_called_once_with(
            CTRL_IN, 0, DEMOD_CTL, 0x0200, 2, 300
        )

    def test_custom_timeout(self, transport):
        """Test the control timeout is passed through."""
        RegisterBus(transport, ctrl_timeout_ms=1000).write_reg(Block.SYS, DEMOD_CTL, 0x20, 1)

        assert transport.write_control.call_args[0][5] == 1000

    def test_transport_error_propagates(self, reg_bus, transport):
        """Test USB failures are not swallowed."""
        transport.write_control.side_effect = TransportError("stall")

        with pytest.raises(TransportError):
            reg_bus.write_reg(Block.USB, USB_SYSCTL, 0x09, 1)


class TestDemodEncoding:
    """Test paged demodulator requests."""

    def test_demod_write_with_dummy_read(self, reg_bus, transport):
        """Test demod writes are followed by a read of page 0x0a."""
        reg_bus.demod_write_reg(1, 0x15, 0x01, 1)

        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, 0x1520, 0x11, b"\x01", 300
        )
        transport.read_control.assert_called_once_with(CTRL_IN, 0, 0x0120, 0x0A, 1, 300)

    def test_demod_write_two_bytes(self, reg_bus, transport):
        """Test a two byte demod write."""
        reg_bus.demod_write_reg(1, 0x9F, 0x0384, 2)

        args = transport.write_control.call_args[0]
        assert args[2] == 0x9F20
        assert args[4] == b"\x03\x84"

    def test_demod_read(self, reg_bus, transport):
        """Test demod reads address the page directly."""
        transport.read_control.return_value = b"\x80"

        assert reg_bus.demod_read_reg(0, 0x06, 1) == 0x80
        transport.read_control.assert_called_once_with(CTRL_IN, 0, 0x0620, 0x00, 1, 300)

    def test_reset_demod(self, reg_bus, transport):
        """Test the soft reset pulse."""
        reg_bus.reset_demod()

        values = [c[0][4] for c in transport.write_control.call_args_list]
        assert values == [b"\x14", b"\x10"]

    def test_test_write(self, reg_bus, transport):
        """Test the control channel probe."""
        reg_bus.test_write()

        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, USB_SYSCTL, 0x0110, b"\x09", 300
        )


class TestI2c:
    """Test the I2C bridge."""

    def test_i2c_read_reg(self, reg_bus, transport):
        """Test register select then single byte read."""
        transport.read_control.return_value = b"\x69"

        assert reg_bus.i2c_read_reg(0x34, 0x00) == 0x69
        transport.write_control.assert_called_once_with(CTRL_OUT, 0, 0x34, 0x0610, b"\x00", 300)
        transport.read_control.assert_called_once_with(CTRL_IN, 0, 0x34, 0x0600, 1, 300)

    def test_i2c_write_reg(self, reg_bus, transport):
        """Test register and value travel in one write."""
        reg_bus.i2c_write_reg(0x34, 0x05, 0x83)

        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, 0x34, 0x0610, b"\x05\x83", 300
        )

    def test_read_eeprom(self, reg_bus, transport):
        """Test the offset is written before byte-wise reads."""
        transport.read_control.side_effect = [b"\x28", b"\x32", b"\x09", b"\x01"]

        assert reg_bus.read_eeprom(0, 4) == b"\x28\x32\x09\x01"
        transport.write_control.assert_called_once_with(
            CTRL_OUT, 0, EEPROM_ADDR, 0x0610, b"\x00", 300
        )
        assert transport.read_control.call_count == 4

    @pytest.mark.parametrize("offset,length", [(-1, 1), (0, 257), (200, 100)])
    def test_read_eeprom_out_of_range(self, reg_bus, offset, length):
        """Test reads past the 256 byte EEPROM are refused."""
        with pytest.raises(ValueError):
            reg_bus.read_eeprom(offset, length)


class TestBulk:
    """Test sample transfers."""

    def test_bulk_transfer(self, transport):
        """Test bulk reads use endpoint 0x81 and the bulk timeout."""
        transport.bulk_read.return_value = 16
        buffer = bytearray(16)

        assert RegisterBus(transport, bulk_timeout_ms=500).bulk_transfer(buffer) == 16
        transport.bulk_read.assert_called_once_with(BULK_ENDPOINT, buffer, 500)

    def test_claim_interface(self, reg_bus, transport):
        """Test interface claiming is delegated."""
        reg_bus.claim_interface(0)
        transport.claim_interface.assert_called_once_with(0)
