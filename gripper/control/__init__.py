from .commands import (
    Command,
    CommandKind,
    CommandResult,
    GenericCommand,
    GenericCommandResult,
    Grasp,
    Home,
    Move,
    Stop,
)
from .dispatcher import CommandDispatcher, CommandRecord, CommandStatus
from .handlers import CommandSettings, execute_command

__all__ = [
    "Command",
    "CommandDispatcher",
    "CommandKind",
    "CommandRecord",
    "CommandResult",
    "CommandSettings",
    "CommandStatus",
    "GenericCommand",
    "GenericCommandResult",
    "Grasp",
    "Home",
    "Move",
    "Stop",
    "execute_command",
]
