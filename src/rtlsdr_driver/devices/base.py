"""
Device identification for RTL2832U-based receivers.

Holds the static table of USB vendor/product ids the driver will bind to
and the descriptive records returned by enumeration.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple


class DeviceCapability(Enum):
    """Receiver capabilities."""

    RX = auto()  # Receive capability
    BIAS_TEE = auto()  # Bias tee for active antennas
    DIRECT_SAMPLE = auto()  # Direct sampling mode (HF)
    EXT_CLOCK = auto()  # Adjustable crystal reference


@dataclass(frozen=True)
class KnownDevice:
    """A USB vendor/product pair known to carry an RTL2832U."""

    vid: int
    pid: int
    name: str


# Matched in order during enumeration; first match names the device
KNOWN_DEVICES: Tuple[KnownDevice, ...] = (
    KnownDevice(0x0BDA, 0x2832, "Generic RTL2832U"),
    KnownDevice(0x0BDA, 0x2838, "Generic RTL2832U OEM"),
    KnownDevice(0x0413, 0x6680, "DigitalNow Quad DVB-T PCI-E card"),
    KnownDevice(0x0413, 0x6F0F, "Leadtek WinFast DTV Dongle mini D"),
    KnownDevice(0x0458, 0x707F, "Genius TVGo DVB-T03 USB dongle (Ver. B)"),
    KnownDevice(0x0CCD, 0x00A9, "Terratec Cinergy T Stick Black (rev 1)"),
    KnownDevice(0x0CCD, 0x00B3, "Terratec NOXON DAB/DAB+ USB dongle (rev 1)"),
    KnownDevice(0x0CCD, 0x00D3, "Terratec Cinergy T Stick RC (Rev.3)"),
    KnownDevice(0x0CCD, 0x00E0, "Terratec NOXON DAB/DAB+ USB dongle (rev 2)"),
    KnownDevice(0x185B, 0x0620, "Compro Videomate U620F"),
    KnownDevice(0x1D19, 0x1101, "Dexatek DK DVB-T Dongle (Logilink VG0002A)"),
    KnownDevice(0x1D19, 0x1102, "Dexatek DK DVB-T Dongle (MSI DigiVox mini II V3.0)"),
    KnownDevice(0x1B80, 0xD3A4, "Twintech UT-40"),
    KnownDevice(0x1F4D, 0xB803, "GTek T803"),
)


def find_known_device(vid: int, pid: int) -> Optional[KnownDevice]:
    """Return the table entry for a vendor/product pair, if any."""
    for dev in KNOWN_DEVICES:
        if dev.vid == vid and dev.pid == pid:
            return dev
    return None


@dataclass
class DeviceInfo:
    """Information about an enumerated receiver."""

    name: str
    serial: str
    manufacturer: str
    product: str
    index: int = 0
    vid: int = 0
    pid: int = 0
    capabilities: List[DeviceCapability] = field(
        default_factory=lambda: [
            DeviceCapability.RX,
            DeviceCapability.BIAS_TEE,
            DeviceCapability.DIRECT_SAMPLE,
            DeviceCapability.EXT_CLOCK,
        ]
    )
