"""
Gripper node: one device, its state loops and its command dispatcher.

    device --read_state--> StatePoller --> DeviceStateCache --> TelemetryPublisher --> sinks
    callers --submit--> CommandDispatcher --> handlers --> device

The node owns every long-lived object; transports (HTTP, message bus) only
talk to it through ``submit``, ``add_sink`` and the read-only accessors.
"""

import logging
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Optional, Tuple

from gripper.config import GripperConfig
from gripper.control import Command, CommandDispatcher, CommandRecord, Stop
from gripper.interface import DeviceError, DeviceState, GripperDevice
from gripper.telemetry import DeviceStateCache, StatePoller, TelemetryPublisher
from gripper.telemetry.publisher import TelemetrySink

logger = logging.getLogger(__name__)

# How long shutdown waits for the final stop command
_SHUTDOWN_STOP_TIMEOUT_S = 2.0


class GripperNode:
    def __init__(self, config: GripperConfig, device: GripperDevice):
        self.config = config
        self.device = device
        self.cache = DeviceStateCache()
        self.poller = StatePoller(device, self.cache, rate_hz=config.poll_rate)
        self.publisher = TelemetryPublisher(
            self.cache, config.joint_names, rate_hz=config.publish_rate
        )
        self.dispatcher = CommandDispatcher(
            device,
            config.command_settings(),
            command_workers=config.command_workers,
            stop_workers=config.stop_workers,
        )
        self._started_at: Optional[float] = None
        self._stopped = False

    def start(self) -> None:
        """Connect the device and start both loops.

        Raises ConnectionError if the device cannot be reached; nothing is
        started in that case.
        """
        if self._stopped:
            raise RuntimeError("Gripper node cannot be restarted")
        if not self.device.is_connected:
            try:
                self.device.connect()
            except DeviceError as e:
                raise ConnectionError(f"Cannot connect to gripper at {self.config.device_address}: {e}") from e

        self.poller.start()
        self.publisher.start()
        self._started_at = time.time()
        logger.info(
            "Gripper node running (device=%s, poll=%.1f Hz, publish=%.1f Hz)",
            self.config.device_address,
            self.config.poll_rate,
            self.config.publish_rate,
        )

    def stop(self) -> None:
        """Stop the gripper, drain commands, stop the loops and disconnect."""
        if self._stopped:
            return
        self._stopped = True

        if self._started_at is not None and self.device.is_connected:
            try:
                _, future = self.dispatcher.submit(Stop())
                future.result(timeout=_SHUTDOWN_STOP_TIMEOUT_S)
            except FutureTimeout:
                logger.warning("Final stop command did not finish within %.1fs", _SHUTDOWN_STOP_TIMEOUT_S)

        self.dispatcher.shutdown(wait=True)
        self.publisher.stop()
        self.poller.stop()
        self.device.disconnect()
        logger.info("Gripper node stopped")

    @property
    def is_running(self) -> bool:
        return self._started_at is not None and not self._stopped

    def submit(self, command: Command) -> Tuple[CommandRecord, Future]:
        return self.dispatcher.submit(command)

    def add_sink(self, sink: TelemetrySink) -> None:
        self.publisher.add_sink(sink)

    def latest_state(self) -> Optional[DeviceState]:
        return self.cache.read()

    def health(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "device_address": self.config.device_address,
            "device_connected": self.device.is_connected,
            "uptime_s": time.time() - self._started_at if self._started_at else 0.0,
            "poller": {
                "running": self.poller.is_running,
                "polls": self.poller.poll_count,
                "failures": self.poller.failure_count,
            },
            "publisher": {
                "running": self.publisher.is_running,
                "published": self.publisher.published_count,
                "skipped_ticks": self.publisher.skipped_ticks,
            },
            "commands_in_flight": self.dispatcher.in_flight(),
        }
