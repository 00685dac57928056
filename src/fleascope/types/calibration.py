"""Probe identities and per-probe calibration profiles."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fleascope.util.defaults import REFERENCE_VOLTAGE


class ProbeType(Enum):
    X1 = 1
    X10 = 10

    @property
    def multiplier(self) -> int:
        return self.value

    @property
    def attenuation(self) -> float:
        return float(self.value)

    def __str__(self) -> str:
        return f"x{self.value}"

    @classmethod
    def from_str(cls, name: str) -> ProbeType:
        key = str(name).strip().lower().lstrip("x")
        for probe in cls:
            if str(probe.value) == key:
                return probe
        raise ValueError(f"Invalid probe type: {name}. Use 'x1' or 'x10'")


@dataclass
class CalibrationProfile:
    """Two raw reference codes and the probe attenuation.

    References are input-referred: `zero_raw` is the ADC code with 0 V at the
    scope input and `full_scale_raw` the code with `reference_voltage` at the
    input. Conversions outside [0, reference_voltage] extrapolate linearly;
    nothing is clamped here.
    """

    zero_raw: Optional[float] = None
    full_scale_raw: Optional[float] = None
    attenuation: float = 1.0
    reference_voltage: float = REFERENCE_VOLTAGE

    @property
    def is_usable(self) -> bool:
        return (
            self.zero_raw is not None
            and self.full_scale_raw is not None
            and math.isfinite(self.zero_raw)
            and math.isfinite(self.full_scale_raw)
            and self.full_scale_raw != self.zero_raw
        )

    def to_raw(self, volts: float) -> Optional[float]:
        if not self.is_usable:
            return None
        span = self.full_scale_raw - self.zero_raw
        return self.zero_raw + (volts / self.attenuation) / self.reference_voltage * span

    def to_volts(self, raw):
        """Raw code (scalar or numpy array) to probe-tip volts, None if unusable."""
        if not self.is_usable:
            return None
        span = self.full_scale_raw - self.zero_raw
        return (raw - self.zero_raw) / span * self.reference_voltage * self.attenuation

    def copy(self) -> CalibrationProfile:
        return CalibrationProfile(
            zero_raw=self.zero_raw,
            full_scale_raw=self.full_scale_raw,
            attenuation=self.attenuation,
            reference_voltage=self.reference_voltage,
        )
