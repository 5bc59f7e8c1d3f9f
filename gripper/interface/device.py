"""
Gripper Device Interface

Contract every gripper adapter implements, plus the motion gate the adapters
share to serialise physical motions and let ``stop()`` preempt them.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

logger = logging.getLogger(__name__)

MOTION_ABORTED = "motion aborted by stop"


class DeviceError(Exception):
    """The gripper could not complete a requested operation."""


@dataclass(frozen=True)
class DeviceState:
    """Snapshot of the gripper as reported by one read."""

    width: float  # current finger opening (m)
    max_width: float  # opening reached after homing (m)
    is_grasped: bool
    temperature: float  # degC
    timestamp: float = field(default_factory=time.time)


class MotionGate:
    """Allows one motion at a time and lets ``stop()`` abort motions.

    Every motion takes a ticket (the stop epoch at the moment it was
    requested). ``stop()`` bumps the epoch, which aborts the running motion
    and every motion still queued behind it. Motions requested after the
    stop are unaffected.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._epoch = 0
        self._busy = False

    @contextmanager
    def motion(self) -> Iterator[int]:
        with self._cond:
            ticket = self._epoch
            while self._busy and self._epoch == ticket:
                self._cond.wait()
            if self._epoch != ticket:
                raise DeviceError(MOTION_ABORTED)
            self._busy = True
        try:
            yield ticket
        finally:
            with self._cond:
                self._busy = False
                self._cond.notify_all()

    def stop(self) -> None:
        with self._cond:
            self._epoch += 1
            self._cond.notify_all()

    def is_aborted(self, ticket: int) -> bool:
        with self._cond:
            return self._epoch != ticket

    def wait(self, ticket: int, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; returns True if the motion was aborted."""
        with self._cond:
            return self._cond.wait_for(lambda: self._epoch != ticket, timeout=timeout)

    @property
    def busy(self) -> bool:
        with self._cond:
            return self._busy


class GripperDevice(ABC):
    """
    Base class for parallel-gripper adapters.

    All operations block for the duration of the physical action and raise
    DeviceError when the gripper cannot complete them.

    Contention:
        - home/move/grasp queue behind each other, one in flight at a time.
        - stop never waits for a motion. It aborts the running motion and the
          motions queued before it; those raise DeviceError(MOTION_ABORTED).
        - read_state never waits for a motion.
    """

    @abstractmethod
    def connect(self) -> None:
        """Open the connection. Raise DeviceError if the gripper is unreachable."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection. Must not raise."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def home(self) -> None:
        """Run the homing routine (full open/close to calibrate max_width)."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop any running motion."""
        ...

    @abstractmethod
    def move(self, width: float, speed: float) -> float:
        """Move the fingers to *width* at *speed* (m/s); returns the reached width."""
        ...

    @abstractmethod
    def grasp(
        self,
        width: float,
        speed: float,
        force: float,
        epsilon_inner: float,
        epsilon_outer: float,
    ) -> DeviceState:
        """Close on an object expected at *width*; returns the state after the grasp."""
        ...

    @abstractmethod
    def read_state(self) -> DeviceState:
        """Read the current gripper state."""
        ...
