"""Protocols for the collaborators the driver consumes but does not own.

The serial channel and the flash storage are injected into `FleaScope`, so the
driver can run against real hardware (`SerialChannel`,
`TerminalFlashStorage`) or the in-memory mocks in `fleascope.device.mock`.
Any object providing these methods will do; `@runtime_checkable` allows
`isinstance()` checks at construction time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from .calibration import ProbeType


@runtime_checkable
class SerialChannelProtocol(Protocol):
    """Line-oriented byte-stream duplex to the device terminal."""

    def write(self, data: bytes) -> None:
        """Write raw bytes.

        Raises
        ------
        ProtocolIOError
            If the channel is closed or the write fails.
        """
        ...

    def read_line(self, timeout: float) -> str:
        """Return the next complete line without its line ending.

        The device prompt counts as a complete line.

        Raises
        ------
        ChannelTimeout
            If no complete line arrived within `timeout` seconds. Bytes of an
            incomplete line stay buffered until `reset()`.
        ProtocolIOError
            If the channel is closed or the read fails.
        """
        ...

    def reset(self) -> None:
        """Discard all buffered input, host side and driver side."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class FlashStorageProtocol(Protocol):
    """Persistent storage for a probe's two calibration references."""

    def read_calibration(self, probe: ProbeType) -> Optional[Tuple[float, float]]:
        """Return (zero_raw, full_scale_raw) or None when nothing is stored.

        Raises
        ------
        FlashIOError
        """
        ...

    def write_calibration(
        self, probe: ProbeType, references: Tuple[float, float]
    ) -> None:
        """Store (zero_raw, full_scale_raw).

        Raises
        ------
        FlashIOError
        """
        ...
