"""
Data model, collaborator protocols and errors of the FleaScope driver.

- Triggers (`AnalogTrigger`, `DigitalTrigger`) and their builders
- Encoded trigger fields, as sent to the device
- Probe identities and calibration profiles
- Acquisition requests, capture timing, samples and results
- Protocols for the serial channel and flash storage collaborators
- The exception hierarchy

Examples
--------
```python
from fleascope.types import AcquisitionRequest, DigitalTrigger, ProbeType

request = AcquisitionRequest(
    probe=ProbeType.X1,
    duration=0.01,
    trigger=DigitalTrigger.start_capturing_when().is_matching(),
)
```

See Also
--------
fleascope.acquisition : Encoding, calibration, timing and parsing
fleascope.device : Device, protocol client and serial channel
"""

from .acquisition import (
    BITMAP_COLUMN_NAME,
    CALIBRATED_COLUMN_NAME,
    RAW_COLUMN_NAME,
    TIME_COLUMN_NAME,
    AcquisitionRequest,
    AcquisitionResult,
    CaptureTiming,
    Sample,
)
from .calibration import CalibrationProfile, ProbeType
from .command import CAPTURE_VERB, CommandFrame
from .errors import (
    CalibrationNotSet,
    CaptureConfigError,
    CaptureWindowTooLarge,
    CaptureWindowTooSmall,
    ChannelTimeout,
    CommandCancelled,
    DeviceStateError,
    FlashIOError,
    FleaScopeError,
    MalformedRow,
    ParseError,
    ProtocolError,
    ProtocolIOError,
    ProtocolTimeout,
    TriggerLevelOutOfRange,
    UnstableSignalError,
)
from .protocols import FlashStorageProtocol, SerialChannelProtocol
from .trigger import (
    NUM_TRIGGER_BITS,
    AnalogTrigger,
    AnalogTriggerBehavior,
    AnalogTriggerBuilder,
    AnalogTriggerFields,
    BitState,
    BitTriggerBuilder,
    DigitalTrigger,
    DigitalTriggerBehavior,
    DigitalTriggerFields,
    Trigger,
    TriggerFields,
)

__all__ = [
    "BITMAP_COLUMN_NAME",
    "CAPTURE_VERB",
    "CALIBRATED_COLUMN_NAME",
    "RAW_COLUMN_NAME",
    "TIME_COLUMN_NAME",
    "NUM_TRIGGER_BITS",
    "AcquisitionRequest",
    "AcquisitionResult",
    "AnalogTrigger",
    "AnalogTriggerBehavior",
    "AnalogTriggerBuilder",
    "AnalogTriggerFields",
    "BitState",
    "BitTriggerBuilder",
    "CalibrationNotSet",
    "CalibrationProfile",
    "CaptureConfigError",
    "CaptureTiming",
    "CaptureWindowTooLarge",
    "CaptureWindowTooSmall",
    "ChannelTimeout",
    "CommandFrame",
    "CommandCancelled",
    "DeviceStateError",
    "DigitalTrigger",
    "DigitalTriggerBehavior",
    "DigitalTriggerFields",
    "FlashIOError",
    "FlashStorageProtocol",
    "FleaScopeError",
    "MalformedRow",
    "ParseError",
    "ProbeType",
    "ProtocolError",
    "ProtocolIOError",
    "ProtocolTimeout",
    "Sample",
    "SerialChannelProtocol",
    "Trigger",
    "TriggerFields",
    "TriggerLevelOutOfRange",
    "UnstableSignalError",
]
