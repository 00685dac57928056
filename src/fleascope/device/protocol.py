"""Command/response exchange with the FleaScope terminal.

A command is one ASCII line. The response is every line the terminal prints
until its prompt, which acts as the end-of-response sentinel and is not part
of the payload.

Recovery follows what the terminal allows: a hung command is interrupted with
Ctrl-C, which makes the terminal abandon it and print a fresh prompt.
"""

from __future__ import annotations

import threading
import time
from enum import Enum, auto
from typing import Optional

from loguru import logger

from fleascope.types.errors import (
    ChannelTimeout,
    CommandCancelled,
    ProtocolIOError,
    ProtocolTimeout,
)
from fleascope.types.protocols import SerialChannelProtocol
from fleascope.util.defaults import (
    CTRL_C,
    DEFAULT_CANCEL_DRAIN_TIMEOUT,
    DEFAULT_INIT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    PROMPT,
)


class ClientState(Enum):
    """State of the most recent exchange."""

    IDLE = auto()
    SENDING = auto()
    AWAITING_RESPONSE = auto()
    COMPLETE = auto()
    TIMED_OUT = auto()
    IO_ERROR = auto()
    CANCELLED = auto()


class ProtocolClient:
    """Sends commands over a serial channel and collects their responses.

    Only one command is in flight per client: `execute` holds a lock for the
    whole exchange, including retries and cancellation.

    Parameters
    ----------
    channel : SerialChannelProtocol
        Open channel to the terminal
    timeout : float
        Default per-attempt response timeout in seconds
    retries : int
        Number of times a timed out command is resent
    poll_interval : float
        Read slice in seconds; bounds the cancellation latency
    cancel_drain_timeout : float
        Seconds to wait for the prompt after sending Ctrl-C
    """

    def __init__(
        self,
        channel: SerialChannelProtocol,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_drain_timeout: float = DEFAULT_CANCEL_DRAIN_TIMEOUT,
    ):
        if not isinstance(channel, SerialChannelProtocol):
            raise TypeError(f"{channel!r} does not implement SerialChannelProtocol")
        if retries < 0:
            raise ValueError("retries must be non-negative")
        if timeout <= 0 or poll_interval <= 0:
            raise ValueError("timeout and poll_interval must be positive")
        self._channel = channel
        self.timeout = timeout
        self.retries = retries
        self.poll_interval = poll_interval
        self.cancel_drain_timeout = cancel_drain_timeout
        self._state = ClientState.IDLE
        self._lock = threading.RLock()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def channel(self) -> SerialChannelProtocol:
        return self._channel

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def execute(
        self,
        command: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        retries: Optional[int] = None,
    ) -> str:
        """Send a command and return its response payload.

        Parameters
        ----------
        command : str
            Single line of ASCII text, without line terminator
        timeout : float, optional
            Per-attempt response timeout, defaults to the client's timeout
        cancel_event : threading.Event, optional
            Set from another thread to abandon the command
        retries : int, optional
            Overrides the client's retry count for this command

        Returns
        -------
        str
            Response lines joined by "\\n", without the prompt

        Raises
        ------
        ProtocolTimeout
            If no attempt saw the prompt within the timeout
        ProtocolIOError
            On channel failure; never retried
        CommandCancelled
            If `cancel_event` was set before the prompt arrived
        """
        if "\n" in command or "\r" in command:
            raise ValueError("Command must be a single line")
        try:
            data = (command + "\n").encode("ascii")
        except UnicodeEncodeError:
            raise ValueError(f"Command is not ASCII: {command!r}") from None
        timeout = self.timeout if timeout is None else timeout
        retries = self.retries if retries is None else retries
        attempts = retries + 1

        with self._lock:
            for attempt in range(1, attempts + 1):
                try:
                    self._channel.reset()
                    self._state = ClientState.SENDING
                    logger.trace(
                        "Sending {!r} (attempt {}/{})", command, attempt, attempts
                    )
                    self._channel.write(data)
                    self._state = ClientState.AWAITING_RESPONSE
                    payload = self._await_prompt(timeout, cancel_event)
                except ChannelTimeout:
                    self._state = ClientState.TIMED_OUT
                    logger.warning(
                        "No prompt within {:.3f} s for {!r} (attempt {}/{})",
                        timeout,
                        command,
                        attempt,
                        attempts,
                    )
                except ProtocolIOError:
                    self._state = ClientState.IO_ERROR
                    logger.exception("Channel failure while executing {!r}", command)
                    raise
                else:
                    self._state = ClientState.COMPLETE
                    logger.trace("Response to {!r}: {!r}", command, payload)
                    return payload
                try:
                    self._interrupt()
                except ProtocolIOError:
                    self._state = ClientState.IO_ERROR
                    logger.exception("Channel failure interrupting {!r}", command)
                    raise

            self._state = ClientState.TIMED_OUT
            raise ProtocolTimeout(command, timeout, attempts)

    def initialize(self, timeout: float = DEFAULT_INIT_TIMEOUT) -> None:
        """Bring the terminal to a known idle state with the prompt enabled.

        Interrupts anything running, then turns the prompt on. No retries: the
        caller decides whether to reset the device and try again.

        Raises
        ------
        ProtocolTimeout
        ProtocolIOError
        """
        with self._lock:
            logger.debug("Sending Ctrl-C to reset the terminal")
            self._interrupt(drain_timeout=timeout)
            logger.debug("Turning on prompt")
            self.execute("prompt on", timeout=timeout, retries=0)
            self._channel.reset()

    def send_reset(self) -> None:
        """Ask the device to reboot. No response is awaited.

        Raises
        ------
        ProtocolIOError
        """
        with self._lock:
            logger.info("Sending reset to device")
            self._channel.write(b"reset\n")
            self._channel.reset()
            self._state = ClientState.IDLE

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _await_prompt(
        self, timeout: float, cancel_event: Optional[threading.Event]
    ) -> str:
        deadline = time.monotonic() + timeout
        lines: list[str] = []
        while True:
            if cancel_event is not None and cancel_event.is_set():
                self._cancel()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ChannelTimeout(f"No prompt within {timeout:.3f} s")
            try:
                line = self._channel.read_line(min(self.poll_interval, remaining))
            except ChannelTimeout:
                continue
            if line == PROMPT:
                return "\n".join(lines)
            lines.append(line)

    def _interrupt(self, drain_timeout: Optional[float] = None) -> bool:
        """Send Ctrl-C, read up to the prompt, discard input.

        Returns
        -------
        bool
            True if the prompt was seen within the drain timeout
        """
        if drain_timeout is None:
            drain_timeout = self.cancel_drain_timeout
        self._channel.write(CTRL_C)
        deadline = time.monotonic() + drain_timeout
        seen = False
        while not seen:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("No prompt within {:.3f} s after Ctrl-C", drain_timeout)
                break
            try:
                line = self._channel.read_line(min(self.poll_interval, remaining))
            except ChannelTimeout:
                continue
            seen = line == PROMPT
        self._channel.reset()
        return seen

    def _cancel(self) -> None:
        logger.info("Cancelling in-flight command")
        try:
            self._interrupt()
        except ProtocolIOError:
            self._state = ClientState.IO_ERROR
            raise
        self._state = ClientState.CANCELLED
        raise CommandCancelled("Command cancelled by caller")
