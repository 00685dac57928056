"""Acquisition requests and results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, NamedTuple, Optional, Union, overload

import numpy as np

from .calibration import CalibrationProfile, ProbeType
from .trigger import NUM_TRIGGER_BITS, Trigger

BITMASK_WIDTH = 16

TIME_COLUMN_NAME = "time"
RAW_COLUMN_NAME = "bnc_raw"
CALIBRATED_COLUMN_NAME = "bnc"
BITMAP_COLUMN_NAME = "bitmap"


@dataclass(frozen=True)
class AcquisitionRequest:
    """One capture: probe, window length and optional trigger and pre-trigger delay.

    Attributes
    ----------
    probe : ProbeType
        Probe whose calibration is used for analog thresholds and voltages
    duration : float
        Capture window in seconds
    trigger : Optional[Trigger]
        Trigger condition, None for the device's default trigger policy
    delay : float
        Pre-trigger delay in seconds
    """

    probe: ProbeType
    duration: float
    trigger: Optional[Trigger] = None
    delay: float = 0.0


@dataclass(frozen=True)
class CaptureTiming:
    """A request converted into device sample counts."""

    sample_rate_divider: int
    prescaler: int
    effective_msps: float
    sample_count: int
    delay_samples: int

    @property
    def sample_interval(self) -> float:
        """Seconds between consecutive samples."""
        return 1.0 / (self.effective_msps * 1_000_000.0)


class Sample(NamedTuple):
    time_offset: float
    raw_value: float
    bitmask: int

    def bit(self, n: int) -> bool:
        _check_bit(n)
        return bool((self.bitmask >> n) & 1)


def _check_bit(n: int) -> None:
    if not 0 <= n < BITMASK_WIDTH:
        raise IndexError(f"Bit {n} out of range, must be between 0 and 15")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


class AcquisitionResult:
    """Ordered, immutable sequence of samples from one capture.

    Stored as three columns (time offset, raw value, bitmask). Voltages and
    per-bit states are computed on demand from those columns and the
    calibration snapshot taken when the capture was parsed.
    """

    def __init__(
        self,
        time: np.ndarray,
        raw: np.ndarray,
        bitmask: np.ndarray,
        probe: ProbeType,
        calibration: Optional[CalibrationProfile] = None,
    ):
        if not (len(time) == len(raw) == len(bitmask)):
            raise ValueError("time, raw and bitmask columns must have same length")
        self._time = _frozen(np.asarray(time, dtype=np.float64).copy())
        self._raw = _frozen(np.asarray(raw, dtype=np.float64).copy())
        self._bitmask = _frozen(np.asarray(bitmask, dtype=np.uint16).copy())
        self._probe = probe
        self._calibration = calibration.copy() if calibration is not None else None

    def __len__(self) -> int:
        return len(self._time)

    @overload
    def __getitem__(self, index: int) -> Sample: ...

    @overload
    def __getitem__(self, index: slice) -> list[Sample]: ...

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        return Sample(
            float(self._time[index]), float(self._raw[index]), int(self._bitmask[index])
        )

    def __iter__(self) -> Iterator[Sample]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(probe={self._probe}, samples={len(self)}, "
            f"calibrated={self.is_calibrated})"
        )

    @property
    def probe(self) -> ProbeType:
        return self._probe

    @property
    def time(self) -> np.ndarray:
        return self._time

    @property
    def raw(self) -> np.ndarray:
        return self._raw

    @property
    def bitmask(self) -> np.ndarray:
        return self._bitmask

    @property
    def samples(self) -> list[Sample]:
        return list(self)

    @property
    def is_calibrated(self) -> bool:
        return self._calibration is not None and self._calibration.is_usable

    @property
    def voltages(self) -> Optional[np.ndarray]:
        """Calibrated probe-tip voltages, None without a usable calibration."""
        if not self.is_calibrated:
            return None
        return self._calibration.to_volts(self._raw)

    def bit(self, n: int) -> np.ndarray:
        """State of bit `n` of every sample's bitmask."""
        _check_bit(n)
        return ((self._bitmask >> n) & 1).astype(bool)

    def digital_bits(self) -> np.ndarray:
        """(samples, 9) boolean array of the digital inputs."""
        if len(self) == 0:
            return np.zeros((0, NUM_TRIGGER_BITS), dtype=bool)
        return np.stack([self.bit(n) for n in range(NUM_TRIGGER_BITS)], axis=1)

    def as_columns(self) -> Dict[str, np.ndarray]:
        cols = {
            TIME_COLUMN_NAME: self._time,
            RAW_COLUMN_NAME: self._raw,
            BITMAP_COLUMN_NAME: self._bitmask,
        }
        volts = self.voltages
        if volts is not None:
            cols[CALIBRATED_COLUMN_NAME] = volts
        for n in range(NUM_TRIGGER_BITS):
            cols[f"bit_{n}"] = self.bit(n)
        return cols
