"""Line-oriented serial channel to the FleaScope command terminal.

The terminal answers every command with zero or more CRLF terminated lines
followed by its prompt ("> "), which is not newline terminated. `LineBuffer`
reassembles lines from arbitrary byte chunks and reports the prompt as a line
of its own once it sits at the start of the buffer.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

import serial  # pyserial package
from loguru import logger

from fleascope.types.errors import ChannelTimeout, ProtocolIOError
from fleascope.util.defaults import DEFAULT_BAUDRATE, DEFAULT_READ_TIMEOUT, PROMPT

_PROMPT_BYTES = PROMPT.encode("ascii")


class LineBuffer:
    """Accumulates bytes and splits them into lines."""

    def __init__(self, prompt: bytes = _PROMPT_BYTES):
        self._prompt = prompt
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def feed(self, data: bytes) -> None:
        self._buf.extend(data)

    def pop_line(self) -> Optional[str]:
        """Next complete line, the prompt itself, or None if incomplete.

        Raises
        ------
        ProtocolIOError
            If the line is not ASCII
        """
        if self._buf.startswith(self._prompt):
            del self._buf[: len(self._prompt)]
            return self._prompt.decode("ascii")
        idx = self._buf.find(b"\n")
        if idx < 0:
            return None
        raw = bytes(self._buf[:idx])
        del self._buf[: idx + 1]
        try:
            return raw.rstrip(b"\r").decode("ascii")
        except UnicodeDecodeError as e:
            raise ProtocolIOError(f"Undecodable line from device: {raw!r}") from e

    def clear(self) -> None:
        self._buf.clear()


class SerialChannel:
    """pyserial implementation of `SerialChannelProtocol`.

    Parameters
    ----------
    port : str
        Serial port ("/dev/ttyACM0", "COM3" etc.)
    baudrate : int
        Nominal baudrate, the device is a USB CDC port
    read_timeout : float
        Upper bound of a single blocking read in seconds
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.port = port
        self.baudrate = baudrate
        self.read_timeout = read_timeout
        self._serial: Optional[serial.Serial] = None
        self._lines = LineBuffer()
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the port and discard anything already buffered.

        Raises
        ------
        ProtocolIOError
            If the port cannot be opened
        """
        if self.is_open:
            return
        try:
            # accepts pyserial URLs ("loop://", "socket://host:port") as well
            self._serial = serial.serial_for_url(
                self.port, baudrate=self.baudrate, timeout=self.read_timeout
            )
        except serial.SerialException as e:
            raise ProtocolIOError(f"Error opening serial port {self.port}: {e}") from e
        logger.debug("Opened serial port {} at {} baud", self.port, self.baudrate)
        self.reset()

    def _port(self) -> serial.Serial:
        if self._serial is None or not self._serial.is_open:
            raise ProtocolIOError(f"Serial port {self.port} is not open")
        return self._serial

    def write(self, data: bytes) -> None:
        port = self._port()
        logger.trace("-> {!r}", data)
        try:
            port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise ProtocolIOError(f"Write to {self.port} failed: {e}") from e

    def read_line(self, timeout: float) -> str:
        deadline = time.monotonic() + timeout
        with self._lock:
            while True:
                line = self._lines.pop_line()
                if line is not None:
                    logger.trace("<- {!r}", line)
                    return line
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ChannelTimeout(f"No complete line within {timeout:.3f} s")
                port = self._port()
                try:
                    port.timeout = min(remaining, self.read_timeout)
                    chunk = port.read(max(1, port.in_waiting))
                except serial.SerialException as e:
                    raise ProtocolIOError(f"Read from {self.port} failed: {e}") from e
                if chunk:
                    self._lines.feed(chunk)

    def reset(self) -> None:
        with self._lock:
            self._lines.clear()
            if self._serial is not None and self._serial.is_open:
                try:
                    self._serial.reset_input_buffer()
                except serial.SerialException as e:
                    raise ProtocolIOError(
                        f"Could not flush {self.port}: {e}"
                    ) from e

    def close(self) -> None:
        if self._serial is not None:
            try:
                self._serial.close()
            except serial.SerialException:
                logger.exception("Error closing serial port {}", self.port)
            self._serial = None
            logger.debug("Closed serial port {}", self.port)
        self._lines.clear()
