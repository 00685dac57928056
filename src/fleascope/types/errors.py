"""Exception hierarchy for the FleaScope driver.

Every failure surfaced to callers is one of these types, so callers can
branch on the class instead of matching message strings.
"""

from __future__ import annotations


class FleaScopeError(Exception):
    """Base class for all FleaScope errors."""


class CalibrationNotSet(FleaScopeError):
    """Probe calibration is incomplete for an operation that needs it."""

    def __init__(self, probe=None, message: str | None = None):
        self.probe = probe
        if message is None:
            message = (
                "No calibration available for this probe"
                if probe is None
                else f"No calibration available for probe {probe}"
            )
        super().__init__(message)


class UnstableSignalError(FleaScopeError):
    """Signal varied too much while taking a calibration reading."""


class DeviceStateError(FleaScopeError):
    """Operation not valid in the current connection state."""


class CaptureConfigError(FleaScopeError, ValueError):
    """Capture request cannot be expressed in device terms."""


class CaptureWindowTooLarge(CaptureConfigError):
    """Duration or delay exceeds the device's addressable sample buffer."""


class CaptureWindowTooSmall(CaptureConfigError):
    """Duration is below the shortest capture the device can time."""


class TriggerLevelOutOfRange(CaptureConfigError):
    """Analog trigger threshold maps outside the device's threshold range."""


class ProtocolError(FleaScopeError):
    """Failure exchanging a command with the device terminal."""


class ProtocolTimeout(ProtocolError):
    """No sentinel observed within the timeout, after all retries."""

    def __init__(self, command: str, timeout: float, attempts: int):
        self.command = command
        self.timeout = timeout
        self.attempts = attempts
        super().__init__(
            f"Timeout: expected prompt within {timeout:.3f} s for {command!r} "
            f"({attempts} attempt(s))"
        )


class ProtocolIOError(ProtocolError):
    """Underlying channel failure. Never retried."""


class CommandCancelled(ProtocolError):
    """The in-flight command was cancelled by the caller."""


class ChannelTimeout(FleaScopeError, TimeoutError):
    """A single channel read saw no complete line in time."""


class ParseError(FleaScopeError):
    """Device response could not be decoded."""


class MalformedRow(ParseError):
    """A response row failed structural validation."""

    def __init__(self, row_index: int, row: str = "", reason: str = ""):
        self.row_index = row_index
        self.row = row
        self.reason = reason
        msg = f"Malformed row {row_index}: {row!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class FlashIOError(FleaScopeError):
    """Flash persistence collaborator failed."""
