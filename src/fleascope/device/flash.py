"""Calibration persistence in the FleaScope's flash variables.

Each probe owns two integer flash variables, `cal_zero_x<m>` and
`cal_3v3_x<m>` (`m` being the probe multiplier). They are stored offset so
that fresh, zeroed flash reads as "not calibrated":

    cal_zero = floor(zero_raw - 2048 + 1000 + 0.5)
    cal_3v3  = floor(full_scale_raw - zero_raw + 1000 + 0.5)

Both variables at 0 means the probe was never calibrated.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional, Tuple

from loguru import logger

from fleascope.types.calibration import ProbeType
from fleascope.types.errors import FlashIOError, ProtocolError

if TYPE_CHECKING:
    from .protocol import ProtocolClient

ADC_MIDPOINT = 2048
FLASH_OFFSET = 1000


def encode_references(zero_raw: float, full_scale_raw: float) -> Tuple[int, int]:
    zero_flash = math.floor(zero_raw - ADC_MIDPOINT + FLASH_OFFSET + 0.5)
    span_flash = math.floor(full_scale_raw - zero_raw + FLASH_OFFSET + 0.5)
    return zero_flash, span_flash


def decode_references(zero_flash: int, span_flash: int) -> Optional[Tuple[float, float]]:
    if zero_flash == 0 and span_flash == 0:
        return None
    zero_raw = float(zero_flash - FLASH_OFFSET + ADC_MIDPOINT)
    return zero_raw, zero_raw + (span_flash - FLASH_OFFSET)


class TerminalFlashStorage:
    """`FlashStorageProtocol` over the device terminal.

    Parameters
    ----------
    client : ProtocolClient
        Client of the connected device
    """

    def __init__(self, client: ProtocolClient):
        self._client = client

    @staticmethod
    def variable_names(probe: ProbeType) -> Tuple[str, str]:
        return f"cal_zero_x{probe.multiplier}", f"cal_3v3_x{probe.multiplier}"

    def _exec(self, command: str) -> str:
        try:
            return self._client.execute(command)
        except ProtocolError as e:
            raise FlashIOError(f"Flash command {command!r} failed: {e}") from e

    def _declare(self, probe: ProbeType) -> None:
        zero_var, span_var = self.variable_names(probe)
        response = self._exec(f"dim {zero_var} as flash, {span_var} as flash")
        if response:
            logger.debug("Calibration variables of probe {}: {}", probe, response)

    def _read_int(self, name: str) -> int:
        response = self._exec(f"print {name}").strip()
        try:
            return int(response)
        except ValueError:
            raise FlashIOError(f"Unexpected value for {name}: {response!r}") from None

    def read_calibration(self, probe: ProbeType) -> Optional[Tuple[float, float]]:
        self._declare(probe)
        zero_var, span_var = self.variable_names(probe)
        zero_flash = self._read_int(zero_var)
        span_flash = self._read_int(span_var)
        logger.trace(
            "Flash {}={}, {}={}", zero_var, zero_flash, span_var, span_flash
        )
        return decode_references(zero_flash, span_flash)

    def write_calibration(
        self, probe: ProbeType, references: Tuple[float, float]
    ) -> None:
        zero_flash, span_flash = encode_references(*references)
        self._declare(probe)
        zero_var, span_var = self.variable_names(probe)
        for name, value in ((zero_var, zero_flash), (span_var, span_flash)):
            response = self._exec(f"{name} = {value}")
            if response.strip():
                raise FlashIOError(f"Could not write {name}: {response.strip()!r}")
