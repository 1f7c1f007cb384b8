"""
Tuner capability contract.

A concrete tuner chip driver (R820T, E4000, ...) subclasses Tuner and is
registered with the tuner registry under the id reported by detection.
The protocol driver talks to tuners only through this interface and
always brackets calls with the I2C repeater.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class TunerInfo:
    """Identity of a tuner chip."""

    id: str  # Detection id, e.g. "r820t"
    if_freq: int  # Nominal intermediate frequency in Hz


@dataclass(frozen=True)
class TunerGain:
    """
    Tuner gain request.

    Attributes:
        auto: True for tuner-controlled AGC
        value: Manual gain in tenths of a dB (ignored when auto)
    """

    auto: bool = True
    value: Optional[int] = None

    @classmethod
    def automatic(cls) -> "TunerGain":
        """Request automatic gain control."""
        return cls(auto=True)

    @classmethod
    def manual(cls, tenth_db: int) -> "TunerGain":
        """Request a fixed gain in tenths of a dB."""
        return cls(auto=False, value=int(tenth_db))

    def __str__(self) -> str:
        if self.auto:
            return "auto"
        return f"{self.value / 10:.1f} dB"


class Tuner(ABC):
    """
    Abstract base class for tuner chip drivers.

    Drivers are constructed with the RegisterBus and must only be called
    while the I2C repeater is enabled (the protocol driver guarantees it).
    """

    @abstractmethod
    def init(self) -> None:
        """Power up and program the tuner's default register set."""
        pass

    @abstractmethod
    def exit(self) -> None:
        """Power the tuner down."""
        pass

    @abstractmethod
    def set_frequency(self, freq: int) -> None:
        """Tune the local oscillator to freq Hz."""
        pass

    @abstractmethod
    def set_bandwidth(self, bandwidth: int, sample_rate: int) -> None:
        """
        Select the IF filter bandwidth.

        Args:
            bandwidth: Requested bandwidth in Hz
            sample_rate: Current demodulator sample rate in Hz
        """
        pass

    @abstractmethod
    def set_gain(self, gain: TunerGain) -> None:
        """Apply an automatic or manual gain setting."""
        pass

    @abstractmethod
    def get_gains(self) -> List[int]:
        """Get supported manual gains in tenths of a dB."""
        pass

    @abstractmethod
    def set_xtal_freq(self, freq: int) -> None:
        """Set the (corrected) reference crystal frequency in Hz."""
        pass

    @abstractmethod
    def get_xtal_freq(self) -> int:
        """Get the reference crystal frequency in Hz."""
        pass

    @abstractmethod
    def get_info(self) -> TunerInfo:
        """Get chip identity and nominal IF."""
        pass

    @abstractmethod
    def get_if_freq(self) -> int:
        """Get the IF currently in use (may move with bandwidth)."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.get_info().id}>"


class NoTuner(Tuner):
    """Placeholder tuner used before detection; every operation is a no-op."""

    TUNER_ID = "none"

    def __init__(self):
        self._xtal = 0

    def init(self) -> None:
        pass

    def exit(self) -> None:
        pass

    def set_frequency(self, freq: int) -> None:
        pass

    def set_bandwidth(self, bandwidth: int, sample_rate: int) -> None:
        pass

    def set_gain(self, gain: TunerGain) -> None:
        pass

    def get_gains(self) -> List[int]:
        return []

    def set_xtal_freq(self, freq: int) -> None:
        self._xtal = freq

    def get_xtal_freq(self) -> int:
        return self._xtal

    def get_info(self) -> TunerInfo:
        return TunerInfo(id=self.TUNER_ID, if_freq=0)

    def get_if_freq(self) -> int:
        return 0
