"""Device base class.

The Device class provides:
1. Configuration validation
2. Connection state
3. Common metadata
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Type

from loguru import logger


class ConnectionState(Enum):
    """Connection lifecycle of a device.

    DISCONNECTED -> CONNECTING -> CONNECTED, and back to DISCONNECTED on
    close or on a failed open.
    """

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


class Device:
    """Base class for hardware devices.

    Required Methods
    --------------
    All device implementations must override these methods:

    - open(): Connect to the hardware, returning (success, message)
    - close(): Disconnect from the hardware
    - is_connected(): Check connection status

    Attributes
    ----------
    required_config : dict[str, Type]
        Required configuration parameters and their types

    Examples
    --------
    ```python
    class MyScope(Device):
        required_config = {"port": str}

        def open(self) -> tuple[bool, str]:
            self._state = ConnectionState.CONNECTED
            return True, "Connected successfully"

        def close(self):
            self._state = ConnectionState.DISCONNECTED
    ```
    """

    required_config: dict[str, Type] = {}  # Required configuration keys

    def __init__(self, **config_kwargs):
        for key, value in config_kwargs.items():
            setattr(self, key, value)
        for key, value in self.required_config.items():
            if not hasattr(self, key):
                logger.error(
                    "Device {} missing required config key: {}",
                    self.__class__.__name__,
                    key,
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
            if not isinstance(getattr(self, key), value):
                logger.error(
                    "Device {} config key {} has wrong type: {} (expected {})",
                    self.__class__.__name__,
                    key,
                    type(getattr(self, key)),
                    value,
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} config key {key} has "
                    + f"wrong type: {type(getattr(self, key))} (expected {value})"
                )
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    def open(self) -> tuple[bool, str]:
        raise NotImplementedError()

    def close(self):
        raise NotImplementedError()

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def unroll_metadata(self) -> dict:
        """Connection details common to all devices."""
        return {"state": self._state.name}
