"""
Known tuner descriptors and the tuner driver registry.

Detection probes each descriptor's check register over I2C; the id of the
first match is looked up in the registry to construct the concrete driver.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from .base import Tuner

logger = logging.getLogger(__name__)

# R82xx family (R820T/R820T2/R828D)
R820T_TUNER_ID = "r820t"
R828D_TUNER_ID = "r828d"
R82XX_TUNER_IDS = frozenset({R820T_TUNER_ID, R828D_TUNER_ID})
R820T_I2C_ADDR = 0x34
R828D_I2C_ADDR = 0x74
R82XX_CHECK_ADDR = 0x00
R82XX_CHECK_VAL = 0x69
# 3.57 MHz IF for the DVB-T 6 MHz mode
R82XX_IF_FREQ = 3_570_000


@dataclass(frozen=True)
class TunerDescriptor:
    """How to recognize a tuner chip on the I2C bus."""

    id: str
    i2c_addr: int
    check_addr: int
    check_val: int


# Probed in order; first match wins
KNOWN_TUNERS: Tuple[TunerDescriptor, ...] = (
    TunerDescriptor(R820T_TUNER_ID, R820T_I2C_ADDR, R82XX_CHECK_ADDR, R82XX_CHECK_VAL),
    TunerDescriptor(R828D_TUNER_ID, R828D_I2C_ADDR, R82XX_CHECK_ADDR, R82XX_CHECK_VAL),
)


def is_r82xx(tuner_id: str) -> bool:
    """Check whether a tuner id belongs to the R82xx IF-tuner family."""
    return tuner_id in R82XX_TUNER_IDS


# Factory receives the RegisterBus and returns a ready-to-init tuner
TunerFactory = Callable[..., Tuner]


class TunerRegistry:
    """
    Registry of tuner driver factories keyed by detection id.

    Thread-safe; a process-wide instance is available via
    get_tuner_registry().
    """

    def __init__(self):
        self._factories: Dict[str, TunerFactory] = {}
        self._lock = Lock()

    def register(self, tuner_id: str, factory: TunerFactory) -> None:
        """
        Register a driver factory.

        Args:
            tuner_id: Detection id the factory handles
            factory: Callable taking the RegisterBus and returning a Tuner
        """
        with self._lock:
            if tuner_id in self._factories:
                logger.warning(f"Tuner driver '{tuner_id}' already registered, replacing")
            self._factories[tuner_id] = factory
        logger.info(f"Registered tuner driver: {tuner_id}")

    def unregister(self, tuner_id: str) -> bool:
        """Remove a driver factory; returns False if it was not registered."""
        with self._lock:
            if self._factories.pop(tuner_id, None) is None:
                return False
        logger.info(f"Unregistered tuner driver: {tuner_id}")
        return True

    def is_registered(self, tuner_id: str) -> bool:
        """Check whether a driver exists for tuner_id."""
        with self._lock:
            return tuner_id in self._factories

    def list_tuners(self) -> List[str]:
        """List registered tuner ids."""
        with self._lock:
            return sorted(self._factories)

    def create(self, tuner_id: str, bus) -> Optional[Tuner]:
        """
        Construct the driver for tuner_id.

        Returns:
            Tuner instance, or None if no driver is registered
        """
        with self._lock:
            factory = self._factories.get(tuner_id)
        if factory is None:
            return None
        return factory(bus)


_registry = TunerRegistry()


def get_tuner_registry() -> TunerRegistry:
    """Get the process-wide tuner registry."""
    return _registry


def register_tuner(tuner_id: str, factory: TunerFactory) -> None:
    """Register a driver factory with the process-wide registry."""
    _registry.register(tuner_id, factory)
