"""
Gripper command variants and results.

The command set is closed: Home, Stop, Move, Grasp and GenericCommand. Each
request is an immutable value owned by the handler executing it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

DEFAULT_GRASP_EPSILON = 0.005  # m


class CommandKind(str, Enum):
    """External endpoint each command arrives on."""

    HOMING = "homing"
    STOP = "stop"
    MOVE = "move"
    GRASP = "grasp"
    GRIPPER_ACTION = "gripper_action"


@dataclass(frozen=True)
class Home:
    kind: ClassVar[CommandKind] = CommandKind.HOMING


@dataclass(frozen=True)
class Stop:
    kind: ClassVar[CommandKind] = CommandKind.STOP


@dataclass(frozen=True)
class Move:
    kind: ClassVar[CommandKind] = CommandKind.MOVE

    width: float  # m
    speed: float  # m/s


@dataclass(frozen=True)
class Grasp:
    kind: ClassVar[CommandKind] = CommandKind.GRASP

    width: float  # expected object width (m)
    speed: float  # m/s
    force: float  # N
    epsilon_inner: float = DEFAULT_GRASP_EPSILON
    epsilon_outer: float = DEFAULT_GRASP_EPSILON


@dataclass(frozen=True)
class GenericCommand:
    """Open/close style request expressed as a per-finger position and effort."""

    kind: ClassVar[CommandKind] = CommandKind.GRIPPER_ACTION

    position: float  # opening of one finger (m)
    max_effort: float  # N; below the grasp threshold the request becomes a move


Command = Union[Home, Stop, Move, Grasp, GenericCommand]


@dataclass(frozen=True)
class CommandResult:
    """Terminal outcome of one command.

    ``fault`` is True when the failure came from the device (the command was
    aborted), False for a command that ran but missed its success criterion.
    """

    success: bool
    error: Optional[str] = None
    fault: bool = False

    @classmethod
    def ok(cls, **kwargs) -> "CommandResult":
        return cls(success=True, **kwargs)

    @classmethod
    def failed(cls, error: str, **kwargs) -> "CommandResult":
        return cls(success=False, error=error, **kwargs)

    @classmethod
    def aborted(cls, error: str, **kwargs) -> "CommandResult":
        return cls(success=False, error=error, fault=True, **kwargs)


@dataclass(frozen=True)
class GenericCommandResult(CommandResult):
    position: float = 0.0  # per-finger opening after execution (m)
    effort: float = 0.0
    stalled: bool = False
    reached_goal: bool = False
