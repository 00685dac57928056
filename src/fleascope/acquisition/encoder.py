"""Trigger encoding: user-level triggers to device-native trigger fields."""

from __future__ import annotations

from typing import Callable, Optional

from loguru import logger

from fleascope.types.errors import CalibrationNotSet, TriggerLevelOutOfRange
from fleascope.types.trigger import (
    AnalogTrigger,
    AnalogTriggerFields,
    BitState,
    DigitalTrigger,
    DigitalTriggerFields,
    Trigger,
    TriggerFields,
)

# device thresholds are raw codes / 4
THRESHOLD_DIVISOR = 4.0
THRESHOLD_LIMIT = 1023

VoltsToRaw = Callable[[float], Optional[float]]


def encode_digital(trigger: DigitalTrigger) -> DigitalTriggerFields:
    pattern = 0
    mask = 0
    for i, state in enumerate(trigger.bit_states):
        if state == BitState.HIGH:
            pattern |= 1 << i
            mask |= 1 << i
        elif state == BitState.LOW:
            mask |= 1 << i
    return DigitalTriggerFields(
        pattern=pattern, mask=mask, mode_code=trigger.behavior.code
    )


def encode_analog(trigger: AnalogTrigger, to_raw: VoltsToRaw) -> AnalogTriggerFields:
    raw = to_raw(trigger.level)
    if raw is None:
        raise CalibrationNotSet(
            message=f"Analog trigger at {trigger.level} V needs a calibrated probe"
        )
    threshold = int(raw / THRESHOLD_DIVISOR + 0.5)
    if not -THRESHOLD_LIMIT <= threshold <= THRESHOLD_LIMIT:
        raise TriggerLevelOutOfRange(
            f"Voltage {trigger.level} out of range, must be between "
            f"-{THRESHOLD_LIMIT} and {THRESHOLD_LIMIT} raw units (got {threshold})"
        )
    return AnalogTriggerFields(mode_code=trigger.behavior.code, threshold=threshold)


def encode(trigger: Optional[Trigger], to_raw: VoltsToRaw) -> TriggerFields:
    """Encode a trigger into device trigger fields.

    Parameters
    ----------
    trigger : Optional[Trigger]
        Trigger to encode. None means the default analog auto trigger at 0 V.
    to_raw : Callable[[float], Optional[float]]
        Probe-tip volts to raw ADC code, returning None when the probe is not
        calibrated. Only called for analog triggers.

    Returns
    -------
    TriggerFields

    Raises
    ------
    CalibrationNotSet
        If an analog trigger (including the default) meets an uncalibrated
        probe.
    TriggerLevelOutOfRange
        If the threshold does not fit the device's threshold range.
    """
    if trigger is None:
        trigger = AnalogTrigger.default()
    if isinstance(trigger, DigitalTrigger):
        fields = encode_digital(trigger)
    elif isinstance(trigger, AnalogTrigger):
        fields = encode_analog(trigger, to_raw)
    else:
        raise TypeError(f"Not a trigger: {trigger!r}")
    logger.trace("Encoded {} as {!r}", trigger, fields.to_wire())
    return fields
