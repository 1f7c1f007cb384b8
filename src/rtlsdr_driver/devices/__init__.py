"""
Device access - USB transport and register bus for RTL2832U receivers.

The RtlSdr session lives in rtlsdr_driver.devices.rtlsdr.
"""

from .base import KNOWN_DEVICES, DeviceCapability, DeviceInfo, KnownDevice
from .registers import Block, RegisterBus
from .transport import UsbTransport

__all__ = [
    "DeviceCapability",
    "DeviceInfo",
    "KnownDevice",
    "KNOWN_DEVICES",
    "Block",
    "RegisterBus",
    "UsbTransport",
]
