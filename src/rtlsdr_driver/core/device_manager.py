"""
Device manager for RTL-SDR detection and session management.

Handles device enumeration, connection management, and
keeps track of open receiver sessions.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..devices.base import DeviceInfo
from ..devices.rtlsdr import RtlSdr
from ..tuners.registry import TunerRegistry
from .config import DriverConfig
from .exceptions import RtlSdrError

logger = logging.getLogger(__name__)


@dataclass
class DetectedDevice:
    """Information about a detected receiver."""

    info: DeviceInfo
    is_available: bool = True


class DeviceManager:
    """
    Manages RTL-SDR detection, connection, and lifecycle.

    Provides a central point for:
    - Enumerating attached receivers
    - Opening and initializing sessions
    - Applying configurations
    - Closing everything on exit
    """

    def __init__(self, tuner_registry: Optional[TunerRegistry] = None):
        self._tuner_registry = tuner_registry
        self._devices: Dict[str, RtlSdr] = {}
        self._detected: List[DetectedDevice] = []

    def scan_devices(self) -> List[DetectedDevice]:
        """
        Scan for attached receivers.

        Returns:
            List of detected devices
        """
        self._detected.clear()

        try:
            for info in RtlSdr.list_devices():
                device_id = f"rtlsdr_{info.index}"
                self._detected.append(
                    DetectedDevice(info=info, is_available=device_id not in self._devices)
                )
                logger.info(f"Found {info.name}: {info.serial}")
        except RtlSdrError as e:
            logger.warning(f"Error scanning RTL-SDR devices: {e}")

        logger.info(f"Total devices found: {len(self._detected)}")
        return self._detected

    @property
    def detected_devices(self) -> List[DetectedDevice]:
        """Get list of detected devices from last scan."""
        return self._detected.copy()

    def get_device(self, device_id: str) -> Optional[RtlSdr]:
        """
        Get an open device by ID.

        Args:
            device_id: Device identifier (e.g., "rtlsdr_0")

        Returns:
            RtlSdr session or None if not found
        """
        return self._devices.get(device_id)

    def open_device(
        self, index: int = 0, config: Optional[DriverConfig] = None
    ) -> Optional[RtlSdr]:
        """
        Open and configure a receiver.

        Args:
            index: Device index
            config: Optional driver configuration

        Returns:
            Open RtlSdr session or None on failure
        """
        device_id = f"rtlsdr_{index}"
        if device_id in self._devices:
            logger.warning(f"Device already open: {device_id}")
            return self._devices[device_id]

        try:
            device = RtlSdr.open(index, config=config, tuner_registry=self._tuner_registry)
        except RtlSdrError as e:
            logger.error(f"Failed to open RTL-SDR device {index}: {e}")
            return None

        self._devices[device_id] = device
        logger.info(f"Opened device: {device_id}")
        return device

    def close_device(self, device_id: str) -> bool:
        """
        Close a device by ID.

        Args:
            device_id: Device identifier

        Returns:
            True if closed successfully
        """
        device = self._devices.pop(device_id, None)
        if device is None:
            logger.warning(f"Device not found: {device_id}")
            return False

        device.close()
        logger.info(f"Closed device: {device_id}")
        return True

    def close_all(self) -> None:
        """Close all open devices."""
        for device_id in list(self._devices.keys()):
            self.close_device(device_id)

    def apply_config(self, device: RtlSdr, config: DriverConfig) -> bool:
        """
        Apply configuration to a device.

        Args:
            device: Open receiver session
            config: Configuration to apply

        Returns:
            True if all settings applied successfully
        """
        try:
            device.apply_config(config)
        except RtlSdrError as e:
            logger.warning(f"Failed to apply configuration: {e}")
            return False
        return True

    def has_device(self) -> bool:
        """Check if any receiver is available."""
        return any(d.is_available for d in self._detected)

    @property
    def open_devices(self) -> Dict[str, RtlSdr]:
        """Get dictionary of currently open devices."""
        return self._devices.copy()

    def __enter__(self):
        """Context manager entry."""
        self.scan_devices()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close_all()
        return False
