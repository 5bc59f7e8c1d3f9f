"""
State poller: reads the gripper at a fixed rate and refreshes the cache.

Runs independently of command handling. A failed read skips the tick and
leaves the cache untouched; polling only ends when ``stop()`` is called.
"""

import logging
import threading
import time
from typing import Optional

from gripper.interface.device import DeviceError, GripperDevice

from .state_cache import DeviceStateCache

logger = logging.getLogger(__name__)


class StatePoller:
    """Fixed-frequency read loop feeding a DeviceStateCache::

        poller = StatePoller(device, cache, rate_hz=10.0)
        poller.start()
        # ... later ...
        poller.stop()
    """

    DEFAULT_RATE_HZ = 10.0

    def __init__(
        self,
        device: GripperDevice,
        cache: DeviceStateCache,
        rate_hz: float = DEFAULT_RATE_HZ,
    ):
        if rate_hz <= 0:
            raise ValueError(f"Poll rate must be positive, got {rate_hz}")
        self.device = device
        self.cache = cache
        self.rate_hz = rate_hz
        self.dt = 1.0 / rate_hz

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Diagnostics
        self._poll_count = 0
        self._failure_count = 0
        self._consecutive_failures = 0

    def start(self) -> None:
        if self.is_running:
            logger.warning("State poller already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="gripper-state-poller", daemon=True)
        self._thread.start()
        logger.info("State poller started at %.1f Hz", self.rate_hz)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        logger.info(
            "State poller stopped after %d polls (%d failed)", self._poll_count, self._failure_count
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def poll_count(self) -> int:
        return self._poll_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def tick(self) -> bool:
        """Read once and update the cache. Returns False if the read failed."""
        try:
            state = self.device.read_state()
        except DeviceError as e:
            self._record_failure("Gripper state read failed, keeping last state: %s", e)
            return False
        except Exception as e:
            logger.exception("Unexpected error while polling gripper state")
            self._record_failure("Gripper state read failed, keeping last state: %s", e, logged=True)
            return False

        self.cache.update(state)
        self._poll_count += 1
        if self._consecutive_failures:
            logger.info("Gripper state reads recovered after %d failures", self._consecutive_failures)
            self._consecutive_failures = 0
        return True

    def _record_failure(self, msg: str, err: Exception, logged: bool = False) -> None:
        self._failure_count += 1
        self._consecutive_failures += 1
        if logged:
            return
        # Warn once per outage, then keep quiet until reads recover
        if self._consecutive_failures == 1:
            logger.warning(msg, err)
        else:
            logger.debug(msg, err)

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
                    logger.warning("State poller overrun: %.3fms behind", -sleep_time * 1000)
                next_time = time.monotonic()
