"""Command frames sent to the device terminal."""

from __future__ import annotations

from dataclasses import dataclass

from .acquisition import CaptureTiming
from .calibration import ProbeType
from .trigger import TriggerFields

CAPTURE_VERB = "scope"


@dataclass(frozen=True)
class CommandFrame:
    """A capture command.

    The probe travels with the frame for host-side bookkeeping only: the
    device has a single BNC input, so the probe is not part of the wire line.
    """

    probe: ProbeType
    timing: CaptureTiming
    trigger: TriggerFields

    def to_line(self) -> str:
        """Wire form, without the line terminator.

        `scope <sample_rate_divider> <trigger fields> <delay_samples>`
        """
        return (
            f"{CAPTURE_VERB} {self.timing.sample_rate_divider} "
            f"{self.trigger.to_wire()} {self.timing.delay_samples}"
        )

    def __str__(self) -> str:
        return self.to_line()
