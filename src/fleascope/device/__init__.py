"""
The FleaScope device and its communication stack.

- `FleaScope`: the device, owning one connection
- `ProtocolClient`: command/response exchange with retry and cancellation
- `SerialChannel`: pyserial line channel to the terminal
- `TerminalFlashStorage`: calibration persistence in flash variables

Mock collaborators for tests live in `fleascope.device.mock`.
"""

from .device import ConnectionState, Device
from .flash import TerminalFlashStorage
from .fleascope import FleaScope
from .protocol import ClientState, ProtocolClient
from .serial_channel import LineBuffer, SerialChannel

__all__ = [
    "ClientState",
    "ConnectionState",
    "Device",
    "FleaScope",
    "LineBuffer",
    "ProtocolClient",
    "SerialChannel",
    "TerminalFlashStorage",
]
