"""Trigger descriptions and their device-native encodings.

A trigger is either analog (threshold crossing on the BNC input) or digital
(pattern on the nine logic inputs). Both are immutable and are built through
small builders:

```python
from fleascope.types import AnalogTrigger, BitState, DigitalTrigger

analog = AnalogTrigger.start_capturing_when().rising_edge(1.5)
digital = (
    DigitalTrigger.start_capturing_when()
    .bit0(BitState.HIGH)
    .bit1(BitState.LOW)
    .starts_matching()
)
```

The encoded form (`TriggerFields`) is produced by
`fleascope.acquisition.encoder.encode` only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union

NUM_TRIGGER_BITS = 9


class BitState(Enum):
    HIGH = "HIGH"
    LOW = "LOW"
    DONT_CARE = "DONT_CARE"


class DigitalTriggerBehavior(Enum):
    """Digital trigger modes, valued by their device mode code."""

    AUTO = "~"
    IS_MATCHING = ""
    STARTS_MATCHING = "+"
    STOPS_MATCHING = "-"

    @property
    def code(self) -> str:
        return self.value


class AnalogTriggerBehavior(Enum):
    """Analog trigger edges, valued by their device mode code."""

    AUTO = "~"
    LEVEL = ""
    RISING = "+"
    FALLING = "-"

    @property
    def code(self) -> str:
        return self.value


@dataclass(frozen=True)
class AnalogTrigger:
    """Capture when the BNC voltage crosses `level` (volts at the probe tip)."""

    level: float
    behavior: AnalogTriggerBehavior = AnalogTriggerBehavior.AUTO

    @staticmethod
    def start_capturing_when() -> AnalogTriggerBuilder:
        return AnalogTriggerBuilder()

    @classmethod
    def default(cls) -> AnalogTrigger:
        """Auto trigger at 0 V, used when no trigger is given."""
        return cls(0.0, AnalogTriggerBehavior.AUTO)


@dataclass(frozen=True)
class DigitalTrigger:
    """Capture on a pattern of the nine digital inputs."""

    bit_states: Tuple[BitState, ...] = field(
        default=(BitState.DONT_CARE,) * NUM_TRIGGER_BITS
    )
    behavior: DigitalTriggerBehavior = DigitalTriggerBehavior.IS_MATCHING

    def __post_init__(self):
        states = tuple(self.bit_states)
        if len(states) != NUM_TRIGGER_BITS:
            raise ValueError(
                f"Digital trigger needs {NUM_TRIGGER_BITS} bit states, "
                f"got {len(states)}"
            )
        for state in states:
            if not isinstance(state, BitState):
                raise TypeError(f"Invalid bit state: {state!r}")
        object.__setattr__(self, "bit_states", states)

    @staticmethod
    def start_capturing_when() -> BitTriggerBuilder:
        return BitTriggerBuilder()

    @property
    def is_unconditional(self) -> bool:
        """All bits don't-care while matching: captures immediately."""
        return self.behavior == DigitalTriggerBehavior.IS_MATCHING and all(
            s == BitState.DONT_CARE for s in self.bit_states
        )


Trigger = Union[AnalogTrigger, DigitalTrigger]


class BitTriggerBuilder:
    """Accumulates per-bit constraints for a `DigitalTrigger`.

    Bits may be set in any order; the last value written for a bit wins.
    One of the terminal methods (`is_matching`, `starts_matching`,
    `stops_matching`, `auto`) produces the trigger.
    """

    def __init__(self):
        self._bit_states = [BitState.DONT_CARE] * NUM_TRIGGER_BITS

    def set_bit(self, bit: int, state: BitState) -> BitTriggerBuilder:
        if not 0 <= bit < NUM_TRIGGER_BITS:
            raise IndexError(
                f"Bit index {bit} out of range, must be between 0 and "
                f"{NUM_TRIGGER_BITS - 1}"
            )
        if not isinstance(state, BitState):
            raise TypeError(f"Invalid bit state: {state!r}")
        self._bit_states[bit] = state
        return self

    def bit0(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(0, state)

    def bit1(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(1, state)

    def bit2(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(2, state)

    def bit3(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(3, state)

    def bit4(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(4, state)

    def bit5(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(5, state)

    def bit6(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(6, state)

    def bit7(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(7, state)

    def bit8(self, state: BitState) -> BitTriggerBuilder:
        return self.set_bit(8, state)

    def _finish(self, behavior: DigitalTriggerBehavior) -> DigitalTrigger:
        return DigitalTrigger(tuple(self._bit_states), behavior)

    def is_matching(self) -> DigitalTrigger:
        return self._finish(DigitalTriggerBehavior.IS_MATCHING)

    def starts_matching(self) -> DigitalTrigger:
        return self._finish(DigitalTriggerBehavior.STARTS_MATCHING)

    def stops_matching(self) -> DigitalTrigger:
        return self._finish(DigitalTriggerBehavior.STOPS_MATCHING)

    def auto(self) -> DigitalTrigger:
        """Like `is_matching`, but also fires if no match within 100 ms."""
        return self._finish(DigitalTriggerBehavior.AUTO)


class AnalogTriggerBuilder:
    def rising_edge(self, volts: float) -> AnalogTrigger:
        return AnalogTrigger(float(volts), AnalogTriggerBehavior.RISING)

    def falling_edge(self, volts: float) -> AnalogTrigger:
        return AnalogTrigger(float(volts), AnalogTriggerBehavior.FALLING)

    def level(self, volts: float) -> AnalogTrigger:
        return AnalogTrigger(float(volts), AnalogTriggerBehavior.LEVEL)

    def auto(self, volts: float) -> AnalogTrigger:
        """Like `level`, but also fires if no match within 100 ms."""
        return AnalogTrigger(float(volts), AnalogTriggerBehavior.AUTO)


@dataclass(frozen=True)
class AnalogTriggerFields:
    mode_code: str
    threshold: int

    def to_wire(self) -> str:
        return f"{self.mode_code}{self.threshold} 0"


@dataclass(frozen=True)
class DigitalTriggerFields:
    pattern: int
    mask: int
    mode_code: str

    def to_wire(self) -> str:
        return f"{self.mode_code}0x{self.pattern:02x} 0x{self.mask:02x}"


TriggerFields = Union[AnalogTriggerFields, DigitalTriggerFields]
