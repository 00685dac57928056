from __future__ import annotations

import re
import threading
import time
from typing import Callable, Dict, List, Optional, Union

from loguru import logger

from fleascope.acquisition.pipeline import TOTAL_SAMPLES
from fleascope.device.serial_channel import LineBuffer
from fleascope.types.errors import ChannelTimeout, ProtocolIOError
from fleascope.util.defaults import CTRL_C, PROMPT

_FLASH_DECL = re.compile(r"(\w+)\s+as\s+flash")
_ASSIGNMENT = re.compile(r"^(\w+)\s*=\s*(-?\d+)$")


class MockFleaTerminal:  # Protocol compliance checked by SerialChannelProtocol
    """In-memory FleaScope terminal implementing `SerialChannelProtocol`.

    Understands the subset of the terminal the driver uses: prompt and echo
    switches, `ver`, `hostname`, `reset`, `scope`, flash variable declaration,
    `print` and assignment. Every response ends with the prompt while the
    prompt is on.

    Faults can be injected through attributes:

    - `drop_responses`: number of upcoming command lines to swallow silently
    - `fail_writes`: every write raises `ProtocolIOError`
    - `hold_capture`: `scope` prints one row and hangs until Ctrl-C
    - `hung_until_reset`: everything but `reset` is ignored, Ctrl-C included

    Parameters
    ----------
    input_raw : float or callable
        Raw ADC code returned for every sample, or a function of the sample
        index
    bitmap : int or callable
        Digital input bitmap, or a function of the sample index
    """

    def __init__(
        self,
        input_raw: Union[float, Callable[[int], float]] = 2048.0,
        bitmap: Union[int, Callable[[int], int]] = 0,
        version: str = "FleaScope v2.1.0",
        hostname: str = "FleaScope",
    ):
        self.input_raw = input_raw
        self.bitmap = bitmap
        self.version = version
        self.hostname = hostname
        self.flash: Dict[str, int] = {}
        self.commands: List[str] = []
        self.interrupts = 0
        self.resets = 0
        self.echo = True
        self.prompt = True

        self.drop_responses = 0
        self.fail_writes = False
        self.hold_capture = False
        self.hung_until_reset = False

        self._capturing = False
        self._closed = False
        self._pending = bytearray()
        self._out = LineBuffer()
        self._cond = threading.Condition()

    # ------------------------------------------------------------------
    # SerialChannelProtocol
    # ------------------------------------------------------------------

    def write(self, data: bytes) -> None:
        if self._closed:
            raise ProtocolIOError("Mock terminal is closed")
        if self.fail_writes:
            raise ProtocolIOError("Mock terminal write failure")
        with self._cond:
            for byte in data:
                if bytes([byte]) == CTRL_C:
                    self._interrupt()
                elif byte == ord("\n"):
                    line = self._pending.decode("ascii").rstrip("\r")
                    self._pending.clear()
                    self._handle_line(line)
                else:
                    self._pending.append(byte)
            self._cond.notify_all()

    def read_line(self, timeout: float) -> str:
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                if self._closed:
                    raise ProtocolIOError("Mock terminal is closed")
                line = self._out.pop_line()
                if line is not None:
                    return line
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ChannelTimeout(f"No complete line within {timeout:.3f} s")
                self._cond.wait(remaining)

    def reset(self) -> None:
        with self._cond:
            self._out.clear()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def inject(self, data: bytes) -> None:
        """Put unsolicited bytes on the line, as line noise or a late reply would."""
        with self._cond:
            self._out.feed(data)
            self._cond.notify_all()

    # ------------------------------------------------------------------
    # terminal emulation
    # ------------------------------------------------------------------

    @property
    def captures(self) -> List[str]:
        return [c for c in self.commands if c.startswith("scope ")]

    def _emit(self, text: str) -> None:
        self._out.feed(text.encode("ascii"))

    def _respond(self, lines: List[str]) -> None:
        for line in lines:
            self._emit(line + "\r\n")
        if self.prompt:
            self._emit(PROMPT)

    def _interrupt(self) -> None:
        if self.hung_until_reset:
            return
        self.interrupts += 1
        self._capturing = False
        self._pending.clear()
        self._emit("\r\n")
        if self.prompt:
            self._emit(PROMPT)

    def _handle_line(self, line: str) -> None:
        self.commands.append(line)
        if line.strip() == "reset":
            self._reboot()
            return
        if self.hung_until_reset or self._capturing:
            return
        if self.drop_responses > 0:
            self.drop_responses -= 1
            logger.trace("Mock terminal dropping response to {!r}", line)
            return
        if self.echo:
            self._emit(line + "\r\n")
        lines = self._run(line.strip())
        if lines is not None:
            self._respond(lines)

    def _reboot(self) -> None:
        self.resets += 1
        self.hung_until_reset = False
        self._capturing = False
        self.echo = True
        self.prompt = True
        self._out.clear()

    def _run(self, line: str) -> Optional[List[str]]:
        if not line:
            return []
        verb, _, args = line.partition(" ")
        args = args.strip()
        if verb == "prompt" and args in ("on", "off"):
            self.prompt = args == "on"
            return []
        if verb == "echo" and args in ("on", "off"):
            self.echo = args == "on"
            return []
        if verb == "ver":
            return [self.version]
        if verb == "hostname":
            if args:
                self.hostname = args
                return []
            return [self.hostname]
        if verb == "scope":
            return self._scope(args)
        if verb == "dim":
            return self._declare(args)
        if verb == "print":
            if args not in self.flash:
                return [f"var '{args}' not declared"]
            return [str(self.flash[args])]
        match = _ASSIGNMENT.match(line)
        if match is not None:
            name, value = match.groups()
            if name not in self.flash:
                return [f"var '{name}' not declared"]
            self.flash[name] = int(value)
            return []
        return [f"unknown command: {verb}"]

    def _declare(self, args: str) -> List[str]:
        out = []
        for name in _FLASH_DECL.findall(args):
            if name in self.flash:
                out.append(f"var '{name}' already declared at this scope")
            else:
                self.flash[name] = 0
        return out

    def _sample(self, i: int) -> str:
        raw = self.input_raw(i) if callable(self.input_raw) else self.input_raw
        bits = self.bitmap(i) if callable(self.bitmap) else self.bitmap
        return f"{int(round(raw))},0x{bits:03x}"

    def _scope(self, args: str) -> Optional[List[str]]:
        if len(args.split()) != 4:
            return ["usage: scope divider trigger mask delay"]
        if self.hold_capture:
            # first row, then nothing until interrupted
            self._capturing = True
            self._emit(self._sample(0) + "\r\n")
            return None
        return [self._sample(i) for i in range(TOTAL_SAMPLES)]
