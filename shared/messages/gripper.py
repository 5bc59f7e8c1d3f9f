"""Pydantic models for gripper command, result and state messages."""

from typing import Optional

from pydantic import BaseModel, Field, FiniteFloat


# ---------------------------------------------------------------------------
# Requests (HTTP bodies). Schema checks only; semantic checks live in the
# command handlers.
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    width: FiniteFloat = Field(description="Target opening in m")
    speed: FiniteFloat = Field(description="Closing/opening speed in m/s")


class GraspRequest(BaseModel):
    width: FiniteFloat = Field(description="Expected object width in m")
    speed: FiniteFloat = Field(description="Closing speed in m/s")
    force: FiniteFloat = Field(description="Grasp force in N")
    epsilon_inner: FiniteFloat = Field(default=0.005, description="Allowed undershoot in m")
    epsilon_outer: FiniteFloat = Field(default=0.005, description="Allowed overshoot in m")


class GripperActionRequest(BaseModel):
    position: FiniteFloat = Field(description="Opening of one finger in m")
    max_effort: FiniteFloat = Field(default=0.0, description="Grasp force in N; ~0 means plain move")


# ---------------------------------------------------------------------------
# Responses / bus payloads
# ---------------------------------------------------------------------------


class CommandResponse(BaseModel):
    """Outcome of one gripper command, also broadcast on gripper.command_result."""

    id: str = Field(description="Command id")
    kind: str = Field(description="homing, stop, move, grasp or gripper_action")
    status: str = Field(description="pending, executing, succeeded, rejected or aborted")
    success: Optional[bool] = Field(default=None, description="None until the command finishes")
    error: Optional[str] = Field(default=None, description="Failure reason")
    submitted_at: float = Field(description="Unix timestamp of acceptance")
    started_at: Optional[float] = Field(default=None)
    finished_at: Optional[float] = Field(default=None)


class GripperActionResponse(CommandResponse):
    position: float = Field(default=0.0, description="Per-finger opening after execution in m")
    effort: float = Field(default=0.0)
    stalled: bool = Field(default=False)
    reached_goal: bool = Field(default=False)


class JointStateMessage(BaseModel):
    """Finger joint state broadcast on the message bus at the publish rate."""

    timestamp: float = Field(description="Unix timestamp of this sample")
    name: list[str] = Field(min_length=2, max_length=2, description="Finger joint names")
    position: list[float] = Field(description="Finger positions in m (each half the width)")
    velocity: list[float] = Field(default_factory=lambda: [0.0, 0.0])
    effort: list[float] = Field(default_factory=lambda: [0.0, 0.0])

    model_config = {
        "json_schema_extra": {
            "example": {
                "timestamp": 1700000000.0,
                "name": ["gripper_finger_joint1", "gripper_finger_joint2"],
                "position": [0.025, 0.025],
                "velocity": [0.0, 0.0],
                "effort": [0.0, 0.0],
            }
        }
    }


class GripperStateMessage(BaseModel):
    """Last polled gripper state."""

    width: float = Field(description="Current opening in m")
    max_width: float = Field(description="Maximum opening in m")
    is_grasped: bool = Field(default=False, description="Whether an object is held")
    temperature: float = Field(description="Device temperature in degC")
    timestamp: float = Field(description="Unix timestamp of the read")
