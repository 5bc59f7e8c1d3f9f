"""
Simulated parallel gripper, a drop-in replacement for GripperConnection.

Keeps finger width in memory and steps it toward commanded targets at the
commanded speed. Motions run in the caller's thread and can be preempted by
``stop()`` from any other thread. No sockets, no hardware.

Used for:
  - Offline development of the command pipeline
  - Running the gripper node with ``--simulate``
  - Integration tests of dispatcher, poller and publisher
"""

import logging
import threading
import time
from typing import Dict, Optional

import numpy as np

from .device import MOTION_ABORTED, DeviceError, DeviceState, GripperDevice, MotionGate

logger = logging.getLogger(__name__)

_DEFAULT_MAX_WIDTH = 0.08  # m
_DEFAULT_TEMPERATURE = 30.0  # degC
_HOMING_SPEED = 0.1  # m/s

# Trajectory resolution (seconds of simulated motion per step)
_STEP_S = 0.01

_OPERATIONS = ("home", "stop", "move", "grasp", "read_state")


class SimulatedGripper(GripperDevice):
    """In-memory gripper implementing the GripperDevice contract.

    Args:
        max_width: Opening after homing (m).
        initial_width: Opening at start-up. Defaults to max_width.
        object_width: Width of an object held between the fingers, or None.
            Closing motions stop at it; grasps that touch it report
            ``is_grasped``.
        time_scale: Multiplier on simulated motion duration. 0 makes
            motions instantaneous (still preemptible between steps).

    Thread-safe: state is guarded by a lock, motions by a MotionGate.
    """

    def __init__(
        self,
        max_width: float = _DEFAULT_MAX_WIDTH,
        initial_width: Optional[float] = None,
        object_width: Optional[float] = None,
        time_scale: float = 1.0,
        temperature: float = _DEFAULT_TEMPERATURE,
    ) -> None:
        if max_width <= 0:
            raise ValueError(f"max_width must be positive, got {max_width}")
        self._lock = threading.Lock()
        self._gate = MotionGate()
        self._max_width = max_width
        self._width = max_width if initial_width is None else float(initial_width)
        self._object_width = object_width
        self._is_grasped = False
        self._temperature = temperature
        self._time_scale = time_scale
        self._connected = False
        self._faults: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        self._connected = True
        logger.info("SimulatedGripper connected (max_width=%.3f m)", self._max_width)

    def disconnect(self) -> None:
        self._gate.stop()
        self._connected = False
        logger.info("SimulatedGripper disconnected")

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ------------------------------------------------------------------
    # Test hooks
    # ------------------------------------------------------------------

    def fail_next(self, operation: str, message: str) -> None:
        """Make the next call to *operation* raise DeviceError(message)."""
        if operation not in _OPERATIONS:
            raise ValueError(f"Unknown operation '{operation}'. Available: {list(_OPERATIONS)}")
        with self._lock:
            self._faults[operation] = message

    def set_object_width(self, width: Optional[float]) -> None:
        with self._lock:
            self._object_width = width

    @property
    def motion_in_progress(self) -> bool:
        return self._gate.busy

    def _check(self, operation: str) -> None:
        if not self._connected:
            raise DeviceError("gripper not connected")
        with self._lock:
            message = self._faults.pop(operation, None)
        if message is not None:
            raise DeviceError(message)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def home(self) -> None:
        self._check("home")
        with self._gate.motion() as ticket:
            self._run_motion(ticket, self._max_width, _HOMING_SPEED, grasping=False)
        logger.info("SimulatedGripper homed (max_width=%.3f m)", self._max_width)

    def stop(self) -> None:
        self._check("stop")
        self._gate.stop()
        logger.info("SimulatedGripper: stop")

    def move(self, width: float, speed: float) -> float:
        self._check("move")
        if not 0.0 <= width <= self._max_width:
            raise DeviceError(f"width {width:.4f} m outside [0, {self._max_width:.4f}] m")
        if speed <= 0:
            raise DeviceError(f"speed must be positive, got {speed}")
        with self._gate.motion() as ticket:
            return self._run_motion(ticket, width, speed, grasping=False)

    def grasp(
        self,
        width: float,
        speed: float,
        force: float,
        epsilon_inner: float,
        epsilon_outer: float,
    ) -> DeviceState:
        self._check("grasp")
        if speed <= 0:
            raise DeviceError(f"speed must be positive, got {speed}")
        if force < 0:
            raise DeviceError(f"force must be non-negative, got {force}")
        target = min(max(width - epsilon_inner, 0.0), self._max_width)
        with self._gate.motion() as ticket:
            self._run_motion(ticket, target, speed, grasping=True)
        return self._snapshot()

    def read_state(self) -> DeviceState:
        self._check("read_state")
        return self._snapshot()

    # ------------------------------------------------------------------
    # Motion model
    # ------------------------------------------------------------------

    def _snapshot(self) -> DeviceState:
        with self._lock:
            return DeviceState(
                width=round(self._width, 6),
                max_width=self._max_width,
                is_grasped=self._is_grasped,
                temperature=self._temperature,
            )

    def _run_motion(self, ticket: int, target: float, speed: float, grasping: bool) -> float:
        """Step the fingers toward *target*; returns the reached width."""
        with self._lock:
            start = self._width
            obj = self._object_width
            self._is_grasped = False

        # An object between the fingers blocks closing below its width
        blocked = obj is not None and start >= obj > target
        end = obj if blocked else target

        duration = abs(end - start) / speed * self._time_scale
        steps = max(1, int(np.ceil(abs(end - start) / speed / _STEP_S)))
        waypoints = np.linspace(start, end, steps + 1)[1:]
        dt = duration / steps

        reached = start
        for w in waypoints:
            if self._gate.wait(ticket, dt):
                logger.info("SimulatedGripper motion aborted at %.4f m", reached)
                raise DeviceError(MOTION_ABORTED)
            with self._lock:
                self._width = float(w)
            reached = float(w)

        with self._lock:
            self._is_grasped = grasping and blocked
            return self._width
