"""Per-probe calibration state of one device connection.

The store holds one `CalibrationProfile` per `ProbeType`, converts between
probe-tip volts and raw ADC codes, and round-trips the two references through
a flash storage collaborator.

Conversion model
----------------
With `z` the zero reference, `f` the full-scale reference, `Vref` the
reference voltage and `a` the probe attenuation:

    raw   = z + (volts / a) / Vref * (f - z)
    volts = (raw - z) / (f - z) * Vref * a

For the 1x probe (`a = 1`) these are the plain two-point interpolation. Both
directions extrapolate outside [0, Vref] without clamping.
"""

from __future__ import annotations

import math
from typing import Dict, Optional

from loguru import logger

from fleascope.types.calibration import CalibrationProfile, ProbeType
from fleascope.types.errors import CalibrationNotSet, FlashIOError
from fleascope.types.protocols import FlashStorageProtocol
from fleascope.util.defaults import REFERENCE_VOLTAGE


class CalibrationStore:
    def __init__(
        self,
        flash: Optional[FlashStorageProtocol] = None,
        reference_voltage: float = REFERENCE_VOLTAGE,
    ):
        if reference_voltage <= 0:
            raise ValueError("Reference voltage must be positive")
        self._flash = flash
        self._reference_voltage = reference_voltage
        self._profiles: Dict[ProbeType, CalibrationProfile] = {
            probe: CalibrationProfile(
                attenuation=probe.attenuation, reference_voltage=reference_voltage
            )
            for probe in ProbeType
        }

    @property
    def reference_voltage(self) -> float:
        return self._reference_voltage

    @property
    def flash(self) -> Optional[FlashStorageProtocol]:
        return self._flash

    @flash.setter
    def flash(self, flash: Optional[FlashStorageProtocol]) -> None:
        self._flash = flash

    def profile(self, probe: ProbeType) -> CalibrationProfile:
        """Copy of the probe's current profile."""
        return self._profiles[probe].copy()

    def is_calibrated(self, probe: ProbeType) -> bool:
        return self._profiles[probe].is_usable

    def calibration(self, probe: ProbeType) -> tuple[Optional[float], Optional[float]]:
        """(zero_raw, full_scale_raw) of the probe."""
        prof = self._profiles[probe]
        return prof.zero_raw, prof.full_scale_raw

    def set_zero_reference(self, probe: ProbeType, raw_code: float) -> None:
        self._profiles[probe].zero_raw = float(raw_code)
        logger.debug("Probe {} zero reference set to {}", probe, raw_code)

    def set_full_scale_reference(self, probe: ProbeType, raw_code: float) -> None:
        self._profiles[probe].full_scale_raw = float(raw_code)
        logger.debug("Probe {} full-scale reference set to {}", probe, raw_code)

    def set_calibration(
        self, probe: ProbeType, zero_raw: float, full_scale_raw: float
    ) -> None:
        self.set_zero_reference(probe, zero_raw)
        self.set_full_scale_reference(probe, full_scale_raw)

    def clear(self, probe: ProbeType) -> None:
        self._profiles[probe].zero_raw = None
        self._profiles[probe].full_scale_raw = None

    def to_raw(self, probe: ProbeType, volts: float) -> Optional[float]:
        return self._profiles[probe].to_raw(volts)

    def to_volts(self, probe: ProbeType, raw):
        return self._profiles[probe].to_volts(raw)

    def require(self, probe: ProbeType) -> CalibrationProfile:
        """Copy of the profile, raising if it is not usable."""
        prof = self._profiles[probe]
        if not prof.is_usable:
            raise CalibrationNotSet(probe)
        return prof.copy()

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def _require_flash(self) -> FlashStorageProtocol:
        if self._flash is None:
            raise FlashIOError("No flash storage attached to this calibration store")
        return self._flash

    def persist(self, probe: ProbeType) -> None:
        """Write the probe's references to flash.

        Raises
        ------
        CalibrationNotSet
            If the profile is incomplete
        FlashIOError
            If the storage fails
        """
        prof = self.require(probe)
        self._require_flash().write_calibration(
            probe, (prof.zero_raw, prof.full_scale_raw)
        )
        logger.info(
            "Probe {} calibration written to flash: zero={}, full_scale={}",
            probe,
            prof.zero_raw,
            prof.full_scale_raw,
        )

    def load(self, probe: ProbeType) -> bool:
        """Read the probe's references from flash.

        Missing, corrupt or unreadable values leave the profile unset; this
        never raises for missing calibration.

        Returns
        -------
        bool
            True if a usable calibration was loaded
        """
        self.clear(probe)
        if self._flash is None:
            logger.debug("No flash storage, probe {} left uncalibrated", probe)
            return False
        try:
            stored = self._flash.read_calibration(probe)
        except FlashIOError:
            logger.exception("Could not read probe {} calibration from flash", probe)
            return False

        if stored is None:
            logger.info("No calibration stored for probe {}", probe)
            return False
        try:
            zero_raw, full_scale_raw = (float(v) for v in stored)
        except (TypeError, ValueError):
            logger.warning("Corrupt calibration for probe {}: {!r}", probe, stored)
            return False

        candidate = CalibrationProfile(
            zero_raw=zero_raw,
            full_scale_raw=full_scale_raw,
            attenuation=probe.attenuation,
            reference_voltage=self._reference_voltage,
        )
        if not candidate.is_usable or not all(
            math.isfinite(v) for v in (zero_raw, full_scale_raw)
        ):
            logger.warning("Corrupt calibration for probe {}: {!r}", probe, stored)
            return False

        self._profiles[probe] = candidate
        logger.debug(
            "Probe {} calibration: zero={}, full_scale={}",
            probe,
            zero_raw,
            full_scale_raw,
        )
        return True
