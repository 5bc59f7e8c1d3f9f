"""
Shared test fixtures for the grip3r test suite.

Device doubles come in two flavours: a connected SimulatedGripper for
behaviour that needs real motion/stop interplay, and MagicMock(spec=...)
adapters where a test scripts exact device responses.
"""

from unittest.mock import MagicMock

import pytest

from gripper.config import GripperConfig
from gripper.interface import DeviceState, GripperDevice, SimulatedGripper

JOINT_NAMES = ["gripper_finger_joint1", "gripper_finger_joint2"]


def make_state(width=0.05, max_width=0.08, is_grasped=False, temperature=30.0, timestamp=1.0):
    return DeviceState(
        width=width,
        max_width=max_width,
        is_grasped=is_grasped,
        temperature=temperature,
        timestamp=timestamp,
    )


def make_mock_device(state=None, connected=True):
    """MagicMock adapter whose read_state returns *state*."""
    device = MagicMock(spec=GripperDevice)
    device.is_connected = connected
    device.read_state.return_value = state or make_state()
    return device


@pytest.fixture
def sim_gripper():
    """Connected simulated gripper with instantaneous motions."""
    gripper = SimulatedGripper(time_scale=0.0)
    gripper.connect()
    yield gripper
    gripper.disconnect()


@pytest.fixture
def slow_sim_gripper():
    """Connected simulated gripper moving in real time (0.1 m/s covers 8 cm in 0.8 s)."""
    gripper = SimulatedGripper(time_scale=1.0)
    gripper.connect()
    yield gripper
    gripper.disconnect()


@pytest.fixture
def gripper_config():
    return GripperConfig(
        device_address="sim",
        joint_names=JOINT_NAMES,
        poll_rate=50.0,
        publish_rate=50.0,
    )
