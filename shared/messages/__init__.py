"""Pydantic message schemas for inter-service communication."""

from shared.messages.gripper import (
    CommandResponse,
    GraspRequest,
    GripperActionRequest,
    GripperActionResponse,
    GripperStateMessage,
    JointStateMessage,
    MoveRequest,
)
