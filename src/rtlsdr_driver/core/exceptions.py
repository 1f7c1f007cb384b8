"""
Exception hierarchy for the RTL-SDR driver.

All driver exceptions inherit from RtlSdrError so callers can catch every
driver failure with a single except clause. Coefficient range violations in
FIR programming are caller bugs and raise plain ValueError instead.
"""

from typing import Optional


class RtlSdrError(Exception):
    """
    Base exception for driver errors.

    Attributes:
        cause: Original exception that caused this error (if any)
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        msg = super().__str__()
        if self.cause:
            msg = f"{msg} (caused by: {self.cause})"
        return msg


class TransportError(RtlSdrError):
    """
    Raised when the USB layer fails.

    This typically occurs when:
    - No matching device is connected
    - The device was unplugged mid-transfer
    - A control or bulk transfer stalled or timed out
    """

    pass


class ProtocolError(RtlSdrError):
    """
    Raised when a driver-level invariant is violated.

    This typically occurs when:
    - A tuner returns a response that cannot be interpreted
    - An operation is attempted in the wrong session state
    """

    pass


class InvalidArgumentError(ProtocolError, ValueError):
    """Raised when a caller passes a value the hardware cannot accept."""

    pass


class FatalInitializationError(RtlSdrError):
    """
    Raised when a session cannot be brought up.

    Tuner detection exhausted every known descriptor, or the detected tuner
    has no registered driver. The session is never returned to the caller.
    """

    pass
