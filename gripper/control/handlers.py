"""
Command handlers for the parallel gripper.

One handler per command kind. Handlers call the device, judge the outcome
and return a CommandResult. ``execute_command`` is the single entry point:
it picks the handler for the command type and turns device faults into
aborted results so they never propagate to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from gripper.interface.device import DeviceError, GripperDevice

from .commands import (
    DEFAULT_GRASP_EPSILON,
    Command,
    CommandResult,
    GenericCommand,
    GenericCommandResult,
    Grasp,
    Home,
    Move,
    Stop,
)

logger = logging.getLogger(__name__)

WIDTH_NOT_REACHED = "width not reached"
NOT_GRASPED = "object not grasped"
NEGATIVE_WIDTH = "width must be non-negative"
WIDTH_OUT_OF_RANGE = "commanded width out of range"


@dataclass(frozen=True)
class CommandSettings:
    """Tunables the handlers read. Built from GripperConfig at start-up."""

    width_tolerance: float = 0.01  # m
    default_speed: float = 0.1  # m/s
    min_grasp_force: float = 1e-4  # N; below this a gripper action is a plain move
    same_position_threshold: float = 1e-4  # m
    grasp_epsilon_inner: float = DEFAULT_GRASP_EPSILON
    grasp_epsilon_outer: float = DEFAULT_GRASP_EPSILON


DEFAULT_SETTINGS = CommandSettings()


def handle_home(device: GripperDevice, command: Home, settings: CommandSettings) -> CommandResult:
    device.home()
    return CommandResult.ok()


def handle_stop(device: GripperDevice, command: Stop, settings: CommandSettings) -> CommandResult:
    device.stop()
    return CommandResult.ok()


def handle_move(device: GripperDevice, command: Move, settings: CommandSettings) -> CommandResult:
    # also rejects NaN
    if not command.width >= 0.0:
        return CommandResult.failed(NEGATIVE_WIDTH)

    reached = device.move(command.width, command.speed)
    if abs(reached - command.width) <= settings.width_tolerance:
        return CommandResult.ok()

    logger.warning(
        "Move to %.4f m stopped at %.4f m (tolerance %.4f m)",
        command.width,
        reached,
        settings.width_tolerance,
    )
    return CommandResult.failed(WIDTH_NOT_REACHED)


def handle_grasp(device: GripperDevice, command: Grasp, settings: CommandSettings) -> CommandResult:
    state = device.grasp(
        command.width,
        command.speed,
        command.force,
        command.epsilon_inner,
        command.epsilon_outer,
    )
    lower = command.width - command.epsilon_inner
    upper = command.width + command.epsilon_outer
    if state.is_grasped and lower <= state.width <= upper:
        return CommandResult.ok()

    logger.warning(
        "Grasp at %.4f m ended at %.4f m (grasped=%s, band [%.4f, %.4f] m)",
        command.width,
        state.width,
        state.is_grasped,
        lower,
        upper,
    )
    return CommandResult.failed(NOT_GRASPED)


def handle_generic(
    device: GripperDevice, command: GenericCommand, settings: CommandSettings
) -> GenericCommandResult:
    """Map an open/close request onto a move or a grasp.

    The request carries the opening of one finger; the other finger mirrors
    it, so the gripper width is twice the position. Effort below
    ``min_grasp_force`` and any opening motion become a move; closing with
    effort becomes a grasp with that force.
    """
    target_width = 2.0 * command.position
    state = device.read_state()

    if not 0.0 <= target_width <= state.max_width:
        logger.error(
            "Commanding out of range width: max_width = %.4f m, command = %.4f m",
            state.max_width,
            target_width,
        )
        return _generic_result(CommandResult.failed(WIDTH_OUT_OF_RANGE), state.width)

    if abs(target_width - state.width) < settings.same_position_threshold:
        return _generic_result(CommandResult.ok(), state.width)

    if abs(command.max_effort) < settings.min_grasp_force or target_width >= state.width:
        outcome = handle_move(device, Move(width=target_width, speed=settings.default_speed), settings)
    else:
        grasp = Grasp(
            width=target_width,
            speed=settings.default_speed,
            force=command.max_effort,
            epsilon_inner=settings.grasp_epsilon_inner,
            epsilon_outer=settings.grasp_epsilon_outer,
        )
        outcome = handle_grasp(device, grasp, settings)

    return _generic_result(outcome, device.read_state().width)


def _generic_result(outcome: CommandResult, width: float) -> GenericCommandResult:
    return GenericCommandResult(
        success=outcome.success,
        error=outcome.error,
        position=width / 2.0,
        reached_goal=outcome.success,
    )


_HANDLERS: Dict[type, Callable[..., CommandResult]] = {
    Home: handle_home,
    Stop: handle_stop,
    Move: handle_move,
    Grasp: handle_grasp,
    GenericCommand: handle_generic,
}


def execute_command(
    device: GripperDevice,
    command: Command,
    settings: CommandSettings = DEFAULT_SETTINGS,
) -> CommandResult:
    """Run *command* against *device*; device faults become aborted results."""
    try:
        handler = _HANDLERS[type(command)]
    except KeyError:
        raise TypeError(f"Unsupported command type: {type(command).__name__}") from None

    try:
        return handler(device, command, settings)
    except DeviceError as e:
        logger.error("%s aborted by device fault: %s", command.kind.value, e)
        result_type = GenericCommandResult if isinstance(command, GenericCommand) else CommandResult
        return result_type.aborted(str(e))
