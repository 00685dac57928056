"""Base configuration class for a FleaScope connection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mashumaro import DataClassDictMixin

from fleascope.util.defaults import (
    DEFAULT_BAUDRATE,
    DEFAULT_CANCEL_DRAIN_TIMEOUT,
    DEFAULT_INIT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    REFERENCE_VOLTAGE,
)


class DefaultTriggerPolicy(str, Enum):
    """Trigger used when an acquisition request carries none.

    Policies:
    - ANALOG_AUTO: analog auto trigger at 0 V; needs the probe's calibration
    - DIGITAL_FREE_RUN: unconditional digital capture; needs no calibration
    """

    ANALOG_AUTO = "analog_auto"
    DIGITAL_FREE_RUN = "digital_free_run"


@dataclass(kw_only=True)
class ScopeConfig(DataClassDictMixin):
    """Settings of one FleaScope connection.

    Attributes
    ----------
    port : str
        Serial port of the device ("/dev/ttyACM0", "COM3" etc.), empty when a
        channel is injected directly
    baudrate : int
        Serial baudrate (the device is a USB CDC port, the value is nominal)
    read_timeout : float
        Timeout of a single serial read in seconds
    command_timeout : float
        Per-attempt response timeout in seconds, added to the capture window
        for acquisitions
    retries : int
        Number of times a timed out command is resent
    poll_interval : float
        Read slice in seconds while awaiting a response; bounds how quickly a
        cancellation is noticed
    cancel_drain_timeout : float
        Seconds to wait for the prompt after interrupting a command
    init_timeout : float
        Timeout of the "prompt on" handshake when opening the terminal
    reference_voltage : float
        Voltage applied during full-scale calibration
    default_trigger_policy : DefaultTriggerPolicy
        Trigger used for requests without one
    read_calibrations : bool
        Load probe calibrations from flash when opening
    """

    port: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    read_timeout: float = DEFAULT_READ_TIMEOUT
    command_timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    poll_interval: float = DEFAULT_POLL_INTERVAL
    cancel_drain_timeout: float = DEFAULT_CANCEL_DRAIN_TIMEOUT
    init_timeout: float = DEFAULT_INIT_TIMEOUT
    reference_voltage: float = REFERENCE_VOLTAGE
    default_trigger_policy: DefaultTriggerPolicy = DefaultTriggerPolicy.ANALOG_AUTO
    read_calibrations: bool = True

    def validate(self) -> None:
        """Validate configuration values."""
        if self.retries < 0:
            raise ValueError("retries must be non-negative")
        for name in (
            "read_timeout",
            "command_timeout",
            "poll_interval",
            "cancel_drain_timeout",
            "init_timeout",
            "reference_voltage",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.baudrate <= 0:
            raise ValueError("baudrate must be positive")
