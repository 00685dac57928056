from __future__ import annotations

from typing import Dict, Optional, Tuple

from fleascope.types.calibration import ProbeType
from fleascope.types.errors import FlashIOError


class MockFlashStorage:  # Protocol compliance checked by FlashStorageProtocol
    """Dictionary-backed `FlashStorageProtocol`.

    Set `fail` to make every access raise `FlashIOError`. Values can be
    preloaded through `stored`, including corrupt ones.
    """

    def __init__(self, stored: Optional[Dict[ProbeType, Tuple[float, float]]] = None):
        self.stored: Dict[ProbeType, Tuple[float, float]] = dict(stored or {})
        self.fail = False
        self.reads = 0
        self.writes = 0

    def read_calibration(self, probe: ProbeType) -> Optional[Tuple[float, float]]:
        self.reads += 1
        if self.fail:
            raise FlashIOError("Mock flash read failure")
        return self.stored.get(probe)

    def write_calibration(
        self, probe: ProbeType, references: Tuple[float, float]
    ) -> None:
        self.writes += 1
        if self.fail:
            raise FlashIOError("Mock flash write failure")
        self.stored[probe] = tuple(references)
