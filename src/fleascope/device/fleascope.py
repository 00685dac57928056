"""FleaScope USB oscilloscope.

One `FleaScope` owns everything belonging to its connection: the serial
channel, the protocol client, the per-probe calibration and the acquisition
pipeline. Probes are selectors passed to device-level operations.

Examples
--------
```python
from fleascope.device import FleaScope
from fleascope.types import BitState, DigitalTrigger, ProbeType

scope = FleaScope(port="/dev/ttyACM0")
ok, msg = scope.open()
result = scope.read(
    ProbeType.X1,
    0.01,
    trigger=DigitalTrigger.start_capturing_when().bit0(BitState.HIGH).starts_matching(),
)
scope.close()
```
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np
from loguru import logger

from fleascope.acquisition.calibration import CalibrationStore
from fleascope.acquisition.pipeline import AcquisitionPipeline
from fleascope.config import DefaultTriggerPolicy, ScopeConfig
from fleascope.types.acquisition import AcquisitionRequest, AcquisitionResult
from fleascope.types.calibration import ProbeType
from fleascope.types.errors import (
    CalibrationNotSet,
    DeviceStateError,
    FleaScopeError,
    ProtocolError,
    ProtocolTimeout,
    UnstableSignalError,
)
from fleascope.types.protocols import FlashStorageProtocol, SerialChannelProtocol
from fleascope.types.trigger import DigitalTrigger, Trigger
from fleascope.util import format_error_response
from fleascope.util.defaults import CALIBRATION_CAPTURE_TIME, STABLE_SIGNAL_MAX_SPREAD

from .device import ConnectionState, Device
from .flash import TerminalFlashStorage
from .protocol import ProtocolClient
from .serial_channel import SerialChannel

INIT_ATTEMPTS = 3  # terminal initialisations, with a device reset in between


class FleaScope(Device):
    """FleaScope oscilloscope on a serial port or an injected channel.

    Parameters
    ----------
    port : str, optional
        Serial port of the device. Ignored when `channel` is given.
    channel : SerialChannelProtocol, optional
        Pre-built channel, e.g. a `MockFleaTerminal`. Owned by the caller:
        the device never closes it.
    flash : FlashStorageProtocol, optional
        Calibration storage; defaults to the device's flash variables
    config : ScopeConfig, optional
        Connection settings; `port` overrides `config.port`

    Attributes
    ----------
    config : ScopeConfig
        Settings in use
    """

    required_config = {"port": str}

    def __init__(
        self,
        port: str = "",
        channel: Optional[SerialChannelProtocol] = None,
        flash: Optional[FlashStorageProtocol] = None,
        config: Optional[ScopeConfig] = None,
    ):
        config = ScopeConfig() if config is None else config
        port = port or config.port
        super().__init__(port=port)
        config.validate()
        if channel is not None and not isinstance(channel, SerialChannelProtocol):
            raise TypeError(f"{channel!r} does not implement SerialChannelProtocol")
        if flash is not None and not isinstance(flash, FlashStorageProtocol):
            raise TypeError(f"{flash!r} does not implement FlashStorageProtocol")
        self.config = config
        self._injected_channel = channel
        self._injected_flash = flash

        self._channel: Optional[SerialChannelProtocol] = None
        self._client: Optional[ProtocolClient] = None
        self._calibration = CalibrationStore(
            flash, reference_voltage=config.reference_voltage
        )
        self._pipeline: Optional[AcquisitionPipeline] = None
        self._hostname = ""
        self._version = ""
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def open(self) -> tuple[bool, str]:
        """Connect, initialise the terminal and load stored calibrations.

        Returns
        -------
        tuple[bool, str]
            Success flag and a message
        """
        with self._lock:
            if self.is_connected():
                return True, f"FleaScope {self._hostname} already connected"
            self._state = ConnectionState.CONNECTING
            try:
                self._connect()
            except FleaScopeError:
                logger.exception("Error opening FleaScope.")
                self._release_channel()
                self._state = ConnectionState.DISCONNECTED
                return False, f"Error opening FleaScope: {format_error_response()}"
            self._state = ConnectionState.CONNECTED
            logger.info(
                "Connected to FleaScope {} ({}) on {}",
                self._hostname,
                self._version,
                self.port or "injected channel",
            )
            return True, f"Connected to FleaScope {self._hostname} ({self._version})"

    def _connect(self) -> None:
        cfg = self.config
        if self._injected_channel is not None:
            channel = self._injected_channel
        else:
            if not self.port:
                raise DeviceStateError("No serial port configured")
            channel = SerialChannel(self.port, cfg.baudrate, cfg.read_timeout)
            channel.open()
        self._channel = channel
        client = ProtocolClient(
            channel,
            timeout=cfg.command_timeout,
            retries=cfg.retries,
            poll_interval=cfg.poll_interval,
            cancel_drain_timeout=cfg.cancel_drain_timeout,
        )
        self._client = client
        self._initialize_terminal(client)

        client.execute("echo off")
        self._version = client.execute("ver").strip()
        logger.debug("FleaScope version: {}", self._version)
        self._hostname = client.execute("hostname").strip()
        logger.debug("FleaScope hostname: {}", self._hostname)

        if self._injected_flash is None:
            self._calibration.flash = TerminalFlashStorage(client)
        self._pipeline = AcquisitionPipeline(
            client,
            self._calibration,
            cfg.command_timeout,
            cfg.default_trigger_policy,
        )
        if cfg.read_calibrations:
            for probe in ProbeType:
                self._calibration.load(probe)

    def _initialize_terminal(self, client: ProtocolClient) -> None:
        for attempt in range(1, INIT_ATTEMPTS + 1):
            try:
                client.initialize(self.config.init_timeout)
                return
            except ProtocolTimeout:
                if attempt == INIT_ATTEMPTS:
                    raise
                logger.debug(
                    "Timeout during initialization, sending reset and retrying"
                )
                client.send_reset()

    def _release_channel(self) -> None:
        # an injected channel belongs to the caller and stays open
        if self._channel is not None and self._channel is not self._injected_channel:
            self._channel.close()
        if self._injected_flash is None:
            self._calibration.flash = None
        self._channel = None
        self._client = None
        self._pipeline = None

    def close(self):
        """Restore echo and prompt for interactive use, then release the channel.

        A channel passed in as `channel` is left open for its owner.
        """
        with self._lock:
            if self._channel is None:
                return
            try:
                self._client.execute("echo on")
                self._client.execute("prompt on")
            except ProtocolError:
                logger.exception("Error restoring FleaScope terminal settings.")
            finally:
                self._release_channel()
                self._state = ConnectionState.DISCONNECTED
                logger.info("Disconnected from FleaScope {}", self._hostname)

    def _require_connected(self) -> AcquisitionPipeline:
        if self._state != ConnectionState.CONNECTED or self._pipeline is None:
            raise DeviceStateError(
                f"FleaScope is {self._state.name.lower()}, not connected"
            )
        return self._pipeline

    # ------------------------------------------------------------------
    # properties
    # ------------------------------------------------------------------

    @property
    def hostname(self) -> str:
        return self._hostname

    @property
    def version(self) -> str:
        return self._version

    @property
    def calibration(self) -> CalibrationStore:
        return self._calibration

    @property
    def default_trigger_policy(self) -> DefaultTriggerPolicy:
        return self.config.default_trigger_policy

    @default_trigger_policy.setter
    def default_trigger_policy(self, policy: DefaultTriggerPolicy) -> None:
        policy = DefaultTriggerPolicy(policy)
        self.config.default_trigger_policy = policy
        if self._pipeline is not None:
            self._pipeline.default_trigger_policy = policy

    def set_hostname(self, hostname: str) -> None:
        if not hostname or any(c.isspace() for c in hostname):
            raise ValueError(f"Invalid hostname: {hostname!r}")
        with self._lock:
            self._require_connected()
            self._client.execute(f"hostname {hostname}")
            self._hostname = hostname
            logger.info("FleaScope hostname set to {}", hostname)

    def unroll_metadata(self):
        metadata = super().unroll_metadata()
        metadata.update(
            port=self.port,
            hostname=self._hostname,
            version=self._version,
            calibration={
                str(probe): self._calibration.calibration(probe) for probe in ProbeType
            },
        )
        return metadata

    # ------------------------------------------------------------------
    # acquisition
    # ------------------------------------------------------------------

    def acquire(
        self,
        request: AcquisitionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> AcquisitionResult:
        """Run one acquisition. See `AcquisitionPipeline.acquire`.

        Raises
        ------
        DeviceStateError
            If the device is not connected
        """
        with self._lock:
            pipeline = self._require_connected()
            return pipeline.acquire(request, cancel_event=cancel_event)

    def read(
        self,
        probe: ProbeType,
        duration: float,
        trigger: Optional[Trigger] = None,
        delay: float = 0.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> AcquisitionResult:
        """Capture `duration` seconds on `probe`.

        Parameters
        ----------
        probe : ProbeType
            Probe whose calibration applies
        duration : float
            Capture window in seconds
        trigger : Trigger, optional
            Start condition; the default trigger policy applies when omitted
        delay : float
            Pre-trigger delay in seconds
        cancel_event : threading.Event, optional
            Set from another thread to abandon the capture

        Returns
        -------
        AcquisitionResult
        """
        request = AcquisitionRequest(
            probe=probe, duration=duration, trigger=trigger, delay=delay
        )
        return self.acquire(request, cancel_event=cancel_event)

    # ------------------------------------------------------------------
    # calibration
    # ------------------------------------------------------------------

    def read_stable_value(self, probe: ProbeType) -> float:
        """Mean raw code of a short, unconditional capture.

        Raises
        ------
        UnstableSignalError
            If the capture spreads over more than the allowed codes
        """
        with self._lock:
            result = self.read(
                probe,
                CALIBRATION_CAPTURE_TIME,
                trigger=DigitalTrigger.start_capturing_when().is_matching(),
            )
            raw = result.raw
            if len(raw) == 0:
                raise UnstableSignalError("No samples captured")
            spread = float(np.max(raw) - np.min(raw))
            if spread > STABLE_SIGNAL_MAX_SPREAD:
                raise UnstableSignalError(
                    f"Signal is not stable enough for calibration "
                    f"(spread {spread:.0f} > {STABLE_SIGNAL_MAX_SPREAD:.0f})"
                )
            return float(np.mean(raw))

    def calibrate_zero(self, probe: ProbeType) -> float:
        """Set the zero reference from the current input, which must be 0 V."""
        with self._lock:
            value = self.read_stable_value(probe)
            self._calibration.set_zero_reference(probe, value)
            logger.info("Probe {} zero calibrated at {:.1f}", probe, value)
            return value

    def calibrate_full_scale(self, probe: ProbeType) -> float:
        """Set the full-scale reference from the current input.

        The input must be at the reference voltage (3.3 V by default). The
        measured span is scaled by the probe attenuation so references stay
        input-referred.

        Raises
        ------
        CalibrationNotSet
            If the zero reference has not been set first
        """
        with self._lock:
            zero, _ = self._calibration.calibration(probe)
            if zero is None:
                raise CalibrationNotSet(
                    probe, f"Calibrate the zero reference of probe {probe} first"
                )
            measured = self.read_stable_value(probe)
            full = zero + (measured - zero) * probe.attenuation
            self._calibration.set_full_scale_reference(probe, full)
            logger.info("Probe {} full scale calibrated at {:.1f}", probe, full)
            return full

    def persist_calibration(self, probe: ProbeType) -> None:
        with self._lock:
            self._require_connected()
            self._calibration.persist(probe)

    def load_calibration(self, probe: ProbeType) -> bool:
        with self._lock:
            self._require_connected()
            return self._calibration.load(probe)
