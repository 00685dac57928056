"""Composition of one capture: validate, time, encode, execute, parse.

Capture timing
--------------
The device samples its five interleaved ADCs from a 120 MHz MCU clock and
always returns `TOTAL_SAMPLES` rows. A capture window is expressed as a sample
rate divider (`number of 18 MSPS ticks per returned sample`), which the device
turns into a prescaler:

    divider   = 18 * duration_us // 2000
    ps        = 16 if divider > 1000 else 1
    t         = int(120 * 5 * divider / ps / 18 + 0.5)      (1 <= t <= 65535)
    prescaler = ps * t
    msps      = 120 * 5 / prescaler

The pre-trigger delay is sent as a sample count at that effective rate.
"""

from __future__ import annotations

import math
import threading
from typing import TYPE_CHECKING, Optional

from loguru import logger

from fleascope.config import DefaultTriggerPolicy
from fleascope.types.acquisition import (
    AcquisitionRequest,
    AcquisitionResult,
    CaptureTiming,
)
from fleascope.types.command import CommandFrame
from fleascope.types.errors import (
    CaptureConfigError,
    CaptureWindowTooLarge,
    CaptureWindowTooSmall,
)
from fleascope.types.trigger import DigitalTrigger, Trigger

from .calibration import CalibrationStore
from .encoder import encode
from .parser import ResponseParser

if TYPE_CHECKING:
    from fleascope.device.protocol import ProtocolClient

MSPS = 18  # target sample rate, million samples per second
MCU_MHZ = 120.0
INTERLEAVE = 5  # number of interleaved ADCs
TOTAL_SAMPLES = 2000
MAX_PRESCALER_TICKS = 65535
MAX_DURATION = 3.49  # seconds
MIN_DURATION = 111e-6  # seconds
MAX_DELAY = 1.0  # seconds
MAX_DELAY_SAMPLES = 1_000_000


def divider_to_prescaler(divider: int) -> int:
    ps = 16 if divider > 1000 else 1
    t = int(MCU_MHZ * (divider * INTERLEAVE) / ps / MSPS + 0.5)
    if t == 0:
        raise CaptureWindowTooSmall("Time frame too small (min 111 microseconds)")
    if t > MAX_PRESCALER_TICKS:
        raise CaptureWindowTooLarge("Time frame too large (max 3.49 seconds)")
    return ps * t


def prescaler_to_effective_msps(prescaler: int) -> float:
    return MCU_MHZ * INTERLEAVE / prescaler


def plan_capture(duration: float, delay: float = 0.0) -> CaptureTiming:
    """Convert a capture window and delay into device sample counts.

    Parameters
    ----------
    duration : float
        Capture window in seconds
    delay : float
        Pre-trigger delay in seconds

    Returns
    -------
    CaptureTiming

    Raises
    ------
    CaptureConfigError
        For negative or non-finite values
    CaptureWindowTooLarge
        If the window or delay exceeds what the sample buffer can address
    CaptureWindowTooSmall
        If the window is shorter than the device can time
    """
    if not (math.isfinite(duration) and math.isfinite(delay)):
        raise CaptureConfigError("Duration and delay must be finite numbers")
    if duration < 0 or delay < 0:
        raise CaptureConfigError("Duration and delay must be non-negative")
    if duration > MAX_DURATION:
        raise CaptureWindowTooLarge("Time frame too large (max 3.49 seconds)")
    if duration < MIN_DURATION:
        raise CaptureWindowTooSmall("Time frame too small (min 111 microseconds)")
    if delay > MAX_DELAY:
        raise CaptureWindowTooLarge("Delay too large (max 1 second)")

    duration_us = int(round(duration * 1e6))
    divider = MSPS * duration_us // TOTAL_SAMPLES
    if divider == 0:
        raise CaptureWindowTooSmall("Time frame too small (min 111 microseconds)")
    prescaler = divider_to_prescaler(divider)
    effective_msps = prescaler_to_effective_msps(prescaler)

    delay_samples = int(int(round(delay * 1e6)) * effective_msps)
    if delay_samples > MAX_DELAY_SAMPLES:
        raise CaptureWindowTooLarge("Delay too large (max 1 second)")

    return CaptureTiming(
        sample_rate_divider=divider,
        prescaler=prescaler,
        effective_msps=effective_msps,
        sample_count=TOTAL_SAMPLES,
        delay_samples=delay_samples,
    )


def default_trigger_for(policy: DefaultTriggerPolicy) -> Optional[Trigger]:
    """Trigger selected by a default trigger policy, None for the analog default."""
    if policy == DefaultTriggerPolicy.DIGITAL_FREE_RUN:
        return DigitalTrigger.start_capturing_when().is_matching()
    return None


class AcquisitionPipeline:
    """Runs acquisitions over a protocol client.

    Adds no error recovery of its own: calibration, protocol and parse errors
    reach the caller unchanged.

    Parameters
    ----------
    client : ProtocolClient
        Client of the device terminal
    calibration : CalibrationStore
        Calibration of the owning device
    command_timeout : float
        Per-attempt response timeout in seconds, on top of the capture window
    default_trigger_policy : DefaultTriggerPolicy
        Trigger used for requests without one. May be changed later through
        the attribute of the same name.
    """

    def __init__(
        self,
        client: ProtocolClient,
        calibration: CalibrationStore,
        command_timeout: float,
        default_trigger_policy: DefaultTriggerPolicy = DefaultTriggerPolicy.ANALOG_AUTO,
    ):
        self._client = client
        self._calibration = calibration
        self._parser = ResponseParser(calibration)
        self._command_timeout = command_timeout
        self.default_trigger_policy = DefaultTriggerPolicy(default_trigger_policy)

    @property
    def parser(self) -> ResponseParser:
        return self._parser

    def resolve_trigger(self, request: AcquisitionRequest) -> Optional[Trigger]:
        if request.trigger is not None:
            return request.trigger
        return default_trigger_for(self.default_trigger_policy)

    def build_command(self, request: AcquisitionRequest) -> CommandFrame:
        timing = plan_capture(request.duration, request.delay)
        probe = request.probe
        fields = encode(
            self.resolve_trigger(request),
            lambda volts: self._calibration.to_raw(probe, volts),
        )
        return CommandFrame(probe=probe, timing=timing, trigger=fields)

    def acquire(
        self,
        request: AcquisitionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> AcquisitionResult:
        """Capture, parse and return one acquisition.

        Raises
        ------
        CaptureConfigError
            Including CaptureWindowTooLarge, for invalid windows
        CalibrationNotSet
            If the (default) trigger needs calibration the probe lacks
        ProtocolError
            ProtocolTimeout, ProtocolIOError or CommandCancelled
        MalformedRow
            If the response does not parse
        """
        frame = self.build_command(request)
        timeout = self._command_timeout + request.duration + request.delay
        logger.debug("Acquiring on probe {}: {}", request.probe, frame.to_line())
        payload = self._client.execute(
            frame.to_line(), timeout=timeout, cancel_event=cancel_event
        )
        return self._parser.parse(
            payload,
            request.probe,
            frame.timing.sample_interval,
            request.delay,
        )

