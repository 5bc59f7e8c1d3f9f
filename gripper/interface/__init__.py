from .device import MOTION_ABORTED, DeviceError, DeviceState, GripperDevice, MotionGate
from .gripper_connection import DEFAULT_PORT, GripperConnection, parse_device_address
from .simulated_gripper import SimulatedGripper

SIM_ADDRESS = "sim"


def is_simulated_address(address: str) -> bool:
    addr = address.strip()
    return addr == SIM_ADDRESS or addr.startswith("sim://")


def create_device(address: str, timeout: float = 10.0) -> GripperDevice:
    """Build the adapter selected by a ``device_address`` setting."""
    if is_simulated_address(address):
        return SimulatedGripper()
    return GripperConnection.from_address(address, timeout=timeout)


__all__ = [
    "DEFAULT_PORT",
    "MOTION_ABORTED",
    "SIM_ADDRESS",
    "DeviceError",
    "DeviceState",
    "GripperConnection",
    "GripperDevice",
    "MotionGate",
    "SimulatedGripper",
    "create_device",
    "is_simulated_address",
    "parse_device_address",
]
