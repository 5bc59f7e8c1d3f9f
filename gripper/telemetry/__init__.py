from .poller import StatePoller
from .publisher import JointTelemetrySample, TelemetryPublisher, joint_sample_from_state
from .state_cache import DeviceStateCache

__all__ = [
    "DeviceStateCache",
    "JointTelemetrySample",
    "StatePoller",
    "TelemetryPublisher",
    "joint_sample_from_state",
]
