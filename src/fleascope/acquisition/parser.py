"""Decoding of capture payloads into `AcquisitionResult`s.

The device answers a `scope` command with one CSV row per sample:

    2051,0x1ff
    2049,0x1fe

The first column is the raw ADC code of the BNC input, the second the bitmap of
the digital inputs in hexadecimal.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
from loguru import logger

from fleascope.types.acquisition import BITMASK_WIDTH, AcquisitionResult
from fleascope.types.calibration import ProbeType
from fleascope.types.errors import MalformedRow

from .calibration import CalibrationStore

MAX_BITMASK = (1 << BITMASK_WIDTH) - 1


def _parse_row(index: int, row: str) -> tuple[float, int]:
    cols = row.strip().split(",")
    if len(cols) != 2:
        raise MalformedRow(index, row, f"expected 2 columns, got {len(cols)}")
    raw_str, bitmap_str = (c.strip() for c in cols)
    try:
        raw = float(raw_str)
    except ValueError:
        raise MalformedRow(index, row, "raw value is not numeric") from None
    if not math.isfinite(raw):
        raise MalformedRow(index, row, "raw value is not finite")

    digits = bitmap_str[2:] if bitmap_str[:2].lower() == "0x" else bitmap_str
    if not digits or any(c not in "0123456789abcdefABCDEF" for c in digits):
        raise MalformedRow(index, row, "bitmap is not hexadecimal")
    bitmask = int(digits, 16)
    if bitmask > MAX_BITMASK:
        raise MalformedRow(index, row, f"bitmap wider than {BITMASK_WIDTH} bits")
    return raw, bitmask


class ResponseParser:
    """Parses payloads, attaching a snapshot of the probe's calibration.

    Parameters
    ----------
    calibration : CalibrationStore, optional
        Store used for the voltage view. Without one, results carry no
        calibration and `voltages` is None.
    """

    def __init__(self, calibration: Optional[CalibrationStore] = None):
        self._calibration = calibration

    def parse(
        self,
        payload: str,
        probe: ProbeType,
        sample_interval: float,
        delay: float = 0.0,
    ) -> AcquisitionResult:
        """Parse a capture payload.

        Parameters
        ----------
        payload : str
            Response lines, sentinel removed
        probe : ProbeType
            Probe used for the capture
        sample_interval : float
            Seconds between samples
        delay : float
            Pre-trigger delay in seconds; the first sample sits at -delay

        Returns
        -------
        AcquisitionResult

        Raises
        ------
        MalformedRow
            On the first row failing validation. No partial result.
        """
        if sample_interval <= 0:
            raise ValueError("Sample interval must be positive")
        if delay < 0:
            raise ValueError("Delay must be non-negative")

        rows = payload.strip().splitlines() if payload.strip() else []
        raw = np.empty(len(rows), dtype=np.float64)
        bitmask = np.empty(len(rows), dtype=np.uint16)
        for i, row in enumerate(rows):
            raw[i], bitmask[i] = _parse_row(i, row)

        time = -delay + np.arange(len(rows), dtype=np.float64) * sample_interval
        profile = (
            self._calibration.profile(probe) if self._calibration is not None else None
        )
        logger.trace(
            "Parsed {} samples for probe {} (interval {} s, delay {} s)",
            len(rows),
            probe,
            sample_interval,
            delay,
        )
        return AcquisitionResult(time, raw, bitmask, probe, profile)
