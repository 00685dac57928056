"""
Acquisition engine: trigger encoding, calibration, capture timing and parsing.

These pieces are hardware independent; `fleascope.device.FleaScope` wires them
to a protocol client and a serial channel.

Examples
--------
Encoding a trigger against a calibrated probe:
```python
from fleascope.acquisition import CalibrationStore, encode
from fleascope.types import AnalogTrigger, ProbeType

store = CalibrationStore()
store.set_calibration(ProbeType.X1, zero_raw=2048.0, full_scale_raw=3000.0)
fields = encode(
    AnalogTrigger.start_capturing_when().rising_edge(1.5),
    lambda v: store.to_raw(ProbeType.X1, v),
)
```
"""

from .calibration import CalibrationStore
from .encoder import encode, encode_analog, encode_digital
from .parser import ResponseParser
from .pipeline import (
    TOTAL_SAMPLES,
    AcquisitionPipeline,
    default_trigger_for,
    plan_capture,
)

__all__ = [
    "TOTAL_SAMPLES",
    "AcquisitionPipeline",
    "CalibrationStore",
    "ResponseParser",
    "default_trigger_for",
    "encode",
    "encode_analog",
    "encode_digital",
    "plan_capture",
]
