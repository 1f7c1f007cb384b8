"""
USB transport for RTL2832U receivers.

Thin wrapper over pyusb providing device enumeration, interface claiming
and synchronous control/bulk transfers. Every pyusb failure is re-raised
as TransportError with the original exception attached.

Requires: pip install pyusb
Linux: udev rules or root access for the USB device
"""

import logging
from typing import Iterator, List, Optional, Set, Tuple

import usb.core
import usb.util

from ..core.exceptions import InvalidArgumentError, TransportError
from .base import DeviceInfo, KnownDevice, find_known_device

logger = logging.getLogger(__name__)

# Control transfer direction/type (vendor request)
CTRL_IN = usb.util.CTRL_TYPE_VENDOR | usb.util.CTRL_IN  # 0xC0
CTRL_OUT = usb.util.CTRL_TYPE_VENDOR | usb.util.CTRL_OUT  # 0x40

DEFAULT_CTRL_TIMEOUT_MS = 300
DEFAULT_BULK_TIMEOUT_MS = 0  # 0 = wait forever


def _iter_known_devices() -> Iterator[Tuple[usb.core.Device, KnownDevice]]:
    """Yield (pyusb device, table entry) for every attached known receiver."""
    try:
        found = usb.core.find(find_all=True)
    except usb.core.NoBackendError as e:
        raise TransportError("No libusb backend available", cause=e)
    except usb.core.USBError as e:
        raise TransportError("USB enumeration failed", cause=e)

    for dev in found:
        known = find_known_device(dev.idVendor, dev.idProduct)
        if known is not None:
            yield dev, known


def _get_string(dev: usb.core.Device, index: int) -> str:
    """Read a USB string descriptor, returning an empty string on failure."""
    if not index:
        return ""
    try:
        return usb.util.get_string(dev, index) or ""
    except (usb.core.USBError, ValueError, NotImplementedError) as e:
        logger.debug(f"Could not read string descriptor {index}: {e}")
        return ""


class UsbTransport:
    """
    Synchronous USB transport bound to one opened receiver.

    Example:
        >>> transport = UsbTransport.open(0)
        >>> transport.claim_interface(0)
        >>> transport.read_control(CTRL_IN, 0, 0x2000, 0x0100, 1)
        >>> transport.close()
    """

    def __init__(self, device: usb.core.Device, info: Optional[DeviceInfo] = None):
        self._device = device
        self._info = info
        self._claimed: Set[int] = set()

    @property
    def info(self) -> Optional[DeviceInfo]:
        """Get information about the bound device."""
        return self._info

    @staticmethod
    def list_devices() -> List[DeviceInfo]:
        """List all attached receivers matching the known device table."""
        devices = []
        for index, (dev, known) in enumerate(_iter_known_devices()):
            devices.append(
                DeviceInfo(
                    name=known.name,
                    serial=_get_string(dev, dev.iSerialNumber) or f"rtlsdr_{index}",
                    manufacturer=_get_string(dev, dev.iManufacturer),
                    product=_get_string(dev, dev.iProduct),
                    index=index,
                    vid=known.vid,
                    pid=known.pid,
                )
            )
        return devices

    @classmethod
    def open(cls, index: int = 0) -> "UsbTransport":
        """
        Open the receiver at the given ordinal index.

        Args:
            index: Position of the device among attached known receivers

        Returns:
            Transport bound to the device

        Raises:
            InvalidArgumentError: If index is negative
            TransportError: If no receiver exists at that index
        """
        if index < 0:
            raise InvalidArgumentError(f"Device index must be non-negative, got {index}")

        for position, (dev, known) in enumerate(_iter_known_devices()):
            if position != index:
                continue
            info = DeviceInfo(
                name=known.name,
                serial=_get_string(dev, dev.iSerialNumber) or f"rtlsdr_{index}",
                manufacturer=_get_string(dev, dev.iManufacturer),
                product=_get_string(dev, dev.iProduct),
                index=index,
                vid=known.vid,
                pid=known.pid,
            )
            logger.info(f"Found {known.name} (VID={known.vid:04x} PID={known.pid:04x})")
            return cls(dev, info)

        raise TransportError(f"No device found at index {index}")

    def claim_interface(self, interface: int) -> None:
        """Detach any kernel driver and claim the interface."""
        try:
            if self._device.is_kernel_driver_active(interface):
                self._device.detach_kernel_driver(interface)
                logger.debug(f"Detached kernel driver from interface {interface}")
        except (usb.core.USBError, NotImplementedError) as e:
            logger.debug(f"Kernel driver check on interface {interface} failed: {e}")

        try:
            usb.util.claim_interface(self._device, interface)
        except usb.core.USBError as e:
            raise TransportError(f"Failed to claim interface {interface}", cause=e)
        self._claimed.add(interface)

    def release_interface(self, interface: int) -> None:
        """Release a previously claimed interface."""
        try:
            usb.util.release_interface(self._device, interface)
        except usb.core.USBError as e:
            raise TransportError(f"Failed to release interface {interface}", cause=e)
        finally:
            self._claimed.discard(interface)

    def reset(self) -> None:
        """Issue a USB port reset."""
        try:
            self._device.reset()
        except usb.core.USBError as e:
            raise TransportError("USB reset failed", cause=e)

    def read_control(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        length: int,
        timeout_ms: int = DEFAULT_CTRL_TIMEOUT_MS,
    ) -> bytes:
        """Perform an IN control transfer and return the received bytes."""
        try:
            data = self._device.ctrl_transfer(
                request_type, request, value, index, length, timeout=timeout_ms
            )
        except usb.core.USBError as e:
            raise TransportError(
                f"Control read failed (value={value:#06x} index={index:#06x})", cause=e
            )
        return bytes(data)

    def write_control(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        timeout_ms: int = DEFAULT_CTRL_TIMEOUT_MS,
    ) -> int:
        """Perform an OUT control transfer and return the byte count written."""
        try:
            return self._device.ctrl_transfer(
                request_type, request, value, index, data, timeout=timeout_ms
            )
        except usb.core.USBError as e:
            raise TransportError(
                f"Control write failed (value={value:#06x} index={index:#06x})", cause=e
            )

    def bulk_read(
        self,
        endpoint: int,
        buffer: bytearray,
        timeout_ms: int = DEFAULT_BULK_TIMEOUT_MS,
    ) -> int:
        """
        Read from a bulk endpoint into a caller buffer.

        Args:
            endpoint: IN endpoint address
            buffer: Writable buffer; up to len(buffer) bytes are read
            timeout_ms: Transfer timeout (0 waits forever)

        Returns:
            Number of bytes placed in the buffer
        """
        view = memoryview(buffer).cast("B")
        try:
            data = self._device.read(endpoint, len(view), timeout=timeout_ms)
        except usb.core.USBError as e:
            raise TransportError(f"Bulk read on endpoint {endpoint:#04x} failed", cause=e)
        count = len(data)
        view[:count] = bytes(data)
        return count

    def close(self) -> None:
        """Release claimed interfaces and free the device handle."""
        for interface in list(self._claimed):
            try:
                self.release_interface(interface)
            except TransportError as e:
                logger.debug(f"Error releasing interface {interface}: {e}")
        try:
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as e:
            logger.debug(f"Error disposing USB resources: {e}")
