"""
Telemetry publisher for gripper joint state.

Samples the shared state cache at a fixed rate and emits a two-finger
joint-state snapshot to every registered sink. The publisher never waits
for the cache: if the poller holds the lock, that tick is skipped.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from gripper.interface.device import DeviceState
from shared.messages.gripper import JointStateMessage

from .state_cache import DeviceStateCache

logger = logging.getLogger(__name__)

TelemetrySink = Callable[["JointTelemetrySample"], None]


@dataclass(frozen=True)
class JointTelemetrySample:
    """One joint-state snapshot. Each finger contributes half the width."""

    timestamp: float
    names: Tuple[str, str]
    positions: Tuple[float, float]
    velocities: Tuple[float, float] = (0.0, 0.0)
    efforts: Tuple[float, float] = (0.0, 0.0)

    def to_message(self) -> JointStateMessage:
        return JointStateMessage(
            timestamp=self.timestamp,
            name=list(self.names),
            position=list(self.positions),
            velocity=list(self.velocities),
            effort=list(self.efforts),
        )


def joint_sample_from_state(
    state: DeviceState,
    joint_names: Sequence[str],
    timestamp: Optional[float] = None,
) -> JointTelemetrySample:
    half = state.width * 0.5
    return JointTelemetrySample(
        timestamp=time.time() if timestamp is None else timestamp,
        names=(joint_names[0], joint_names[1]),
        positions=(half, half),
    )


class TelemetryPublisher:
    """Fixed-rate joint-state emitter.

    Sinks are plain callables taking a JointTelemetrySample. A sink that
    raises is logged and skipped for that tick only.
    """

    DEFAULT_RATE_HZ = 30.0

    def __init__(
        self,
        cache: DeviceStateCache,
        joint_names: Sequence[str],
        rate_hz: float = DEFAULT_RATE_HZ,
        sinks: Optional[List[TelemetrySink]] = None,
    ):
        if len(joint_names) != 2:
            raise ValueError(f"Expected exactly 2 joint names, got {len(joint_names)}")
        if rate_hz <= 0:
            raise ValueError(f"Publish rate must be positive, got {rate_hz}")
        self.cache = cache
        self.joint_names = (joint_names[0], joint_names[1])
        self.rate_hz = rate_hz
        self.dt = 1.0 / rate_hz

        self._sinks: List[TelemetrySink] = list(sinks or [])
        self._sinks_lock = threading.Lock()
        self._latest: Optional[JointTelemetrySample] = None

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self._published_count = 0
        self._skipped_ticks = 0

    def add_sink(self, sink: TelemetrySink) -> None:
        with self._sinks_lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: TelemetrySink) -> None:
        with self._sinks_lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    # -- Loop ------------------------------------------------------------

    def start(self) -> None:
        if self.is_running:
            logger.warning("Telemetry publisher already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="gripper-telemetry-publisher", daemon=True
        )
        self._thread.start()
        logger.info("Telemetry publisher started at %.1f Hz", self.rate_hz)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        logger.info(
            "Telemetry publisher stopped after %d samples (%d ticks skipped)",
            self._published_count,
            self._skipped_ticks,
        )

    def tick(self) -> Optional[JointTelemetrySample]:
        """Emit one sample if the cache is free and holds a state."""
        acquired, state = self.cache.try_read()
        if not acquired:
            self._skipped_ticks += 1
            return None
        if state is None:
            return None

        sample = joint_sample_from_state(state, self.joint_names)
        self._latest = sample
        self._published_count += 1

        with self._sinks_lock:
            sinks = list(self._sinks)
        for sink in sinks:
            try:
                sink(sample)
            except Exception:
                logger.exception("Telemetry sink %r failed", sink)
        return sample

    def _run(self) -> None:
        next_time = time.monotonic()

        while not self._stop_event.is_set():
            self.tick()

            next_time += self.dt
            sleep_time = next_time - time.monotonic()
            if sleep_time > 0:
                self._stop_event.wait(timeout=sleep_time)
            else:
                if -sleep_time > self.dt:
                    logger.warning("Telemetry publisher overrun: %.3fms behind", -sleep_time * 1000)
                next_time = time.monotonic()

    # -- Diagnostics -----------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def latest_sample(self) -> Optional[JointTelemetrySample]:
        return self._latest

    @property
    def published_count(self) -> int:
        return self._published_count

    @property
    def skipped_ticks(self) -> int:
        return self._skipped_ticks
