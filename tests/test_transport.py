"""Tests for the pyusb transport."""

from array import array
from unittest.mock import MagicMock, patch

import pytest
import usb.core

from rtlsdr_driver.core.exceptions import InvalidArgumentError, TransportError
from rtlsdr_driver.devices.base import KNOWN_DEVICES, find_known_device
from rtlsdr_driver.devices.transport import UsbTransport


def make_usb_device(vid=0x0BDA, pid=0x2838):
    """Mock pyusb device."""
    dev = MagicMock()
    dev.idVendor = vid
    dev.idProduct = pid
    dev.iSerialNumber = 3
    dev.iManufacturer = 1
    dev.iProduct = 2
    dev.is_kernel_driver_active.return_value = False
    return dev


class TestKnownDevices:
    """Test the vendor/product table."""

    def test_generic_dongles_known(self):
        """Test both Realtek ids are in the table."""
        assert find_known_device(0x0BDA, 0x2832).name == "Generic RTL2832U"
        assert find_known_device(0x0BDA, 0x2838) is not None

    def test_unknown_device(self):
        """Test unrelated ids are not matched."""
        assert find_known_device(0x1D50, 0x6089) is None

    def test_table_unique(self):
        """Test no vendor/product pair is listed twice."""
        pairs = [(d.vid, d.pid) for d in KNOWN_DEVICES]
        assert len(pairs) == len(set(pairs))


@patch("usb.util.get_string", return_value="00000001")
@patch("usb.core.find")
class TestEnumeration:
    """Test device listing and opening."""

    def test_list_filters_unknown(self, mock_find, mock_get_string):
        """Test only known receivers are listed."""
        mock_find.return_value = [
            make_usb_device(0x1D50, 0x6089),
            make_usb_device(0x0BDA, 0x2838),
        ]

        devices = UsbTransport.list_devices()

        assert len(devices) == 1
        assert devices[0].index == 0
        assert devices[0].serial == "00000001"
        assert devices[0].vid == 0x0BDA

    def test_list_none(self, mock_find, mock_get_string):
        """Test an empty bus."""
        mock_find.return_value = []
        assert UsbTransport.list_devices() == []

    def test_open_by_index(self, mock_find, mock_get_string):
        """Test the index counts known receivers only."""
        second = make_usb_device(0x0BDA, 0x2832)
        mock_find.return_value = [
            make_usb_device(0x0BDA, 0x2838),
            make_usb_device(0x1D50, 0x6089),
            second,
        ]

        transport = UsbTransport.open(1)

        assert transport.info.index == 1
        assert transport.info.pid == 0x2832

    def test_open_missing(self, mock_find, mock_get_string):
        """Test opening past the last receiver."""
        mock_find.return_value = [make_usb_device()]

        with pytest.raises(TransportError, match="index 3"):
            UsbTransport.open(3)

    def test_open_negative(self, mock_find, mock_get_string):
        """Test negative indices are argument errors."""
        with pytest.raises(InvalidArgumentError):
            UsbTransport.open(-1)

    def test_no_backend(self, mock_find, mock_get_string):
        """Test a missing libusb backend is a transport error."""
        mock_find.side_effect = usb.core.NoBackendError("No backend available")

        with pytest.raises(TransportError) as exc_info:
            UsbTransport.list_devices()

        assert isinstance(exc_info.value.cause, usb.core.NoBackendError)


class TestTransfers:
    """Test control and bulk transfers."""

    def test_read_control(self):
        """Test IN transfers return bytes."""
        dev = make_usb_device()
        dev.ctrl_transfer.return_value = array("B", [0x69])

        data = UsbTransport(dev).read_control(0xC0, 0, 0x34, 0x0600, 1, 300)

        assert data == b"\x69"
        dev.ctrl_transfer.assert_called_once_with(0xC0, 0, 0x34, 0x0600, 1, timeout=300)

    def test_write_control(self):
        """Test OUT transfers return the written count."""
        dev = make_usb_device()
        dev.ctrl_transfer.return_value = 1

        assert UsbTransport(dev).write_control(0x40, 0, 0x2000, 0x0110, b"\x09", 300) == 1

    def test_usb_error_wrapped(self):
        """Test pyusb errors become TransportError with a cause."""
        dev = make_usb_device()
        dev.ctrl_transfer.side_effect = usb.core.USBError("Pipe error")

        with pytest.raises(TransportError) as exc_info:
            UsbTransport(dev).write_control(0x40, 0, 0x2000, 0x0110, b"\x09", 300)

        assert isinstance(exc_info.value.cause, usb.core.USBError)
        assert "caused by" in str(exc_info.value)

    def test_bulk_read_fills_buffer(self):
        """Test bulk data is copied into the caller buffer."""
        dev = make_usb_device()
        dev.read.return_value = array("B", [1, 2, 3])
        buffer = bytearray(8)

        count = UsbTransport(dev).bulk_read(0x81, buffer, 0)

        assert count == 3
        assert buffer[:3] == bytearray([1, 2, 3])
        dev.read.assert_called_once_with(0x81, 8, timeout=0)

    def test_bulk_timeout_wrapped(self):
        """Test a bulk timeout becomes TransportError."""
        dev = make_usb_device()
        dev.read.side_effect = usb.core.USBTimeoutError("Operation timed out")

        with pytest.raises(TransportError):
            UsbTransport(dev).bulk_read(0x81, bytearray(8), 100)


@patch("usb.util.dispose_resources")
@patch("usb.util.release_interface")
@patch("usb.util.claim_interface")
class TestInterfaces:
    """Test interface claiming and cleanup."""

    def test_claim_detaches_kernel_driver(self, mock_claim, mock_release, mock_dispose):
        """Test an active DVB kernel driver is detached first."""
        dev = make_usb_device()
        dev.is_kernel_driver_active.return_value = True

        UsbTransport(dev).claim_interface(0)

        dev.detach_kernel_driver.assert_called_once_with(0)
        mock_claim.assert_called_once_with(dev, 0)

    def test_claim_failure(self, mock_claim, mock_release, mock_dispose):
        """Test a busy interface raises TransportError."""
        mock_claim.side_effect = usb.core.USBError("Resource busy")

        with pytest.raises(TransportError):
            UsbTransport(make_usb_device()).claim_interface(0)

    def test_close_releases_claimed(self, mock_claim, mock_release, mock_dispose):
        """Test close releases interfaces and frees the handle."""
        dev = make_usb_device()
        transport = UsbTransport(dev)
        transport.claim_interface(0)

        transport.close()

        mock_release.assert_called_once_with(dev, 0)
        mock_dispose.assert_called_once_with(dev)

    def test_close_survives_release_error(self, mock_claim, mock_release, mock_dispose):
        """Test cleanup continues when release fails."""
        mock_release.side_effect = usb.core.USBError("No such device")
        dev = make_usb_device()
        transport = UsbTransport(dev)
        transport.claim_interface(0)

        transport.close()

        mock_dispose.assert_called_once_with(dev)
