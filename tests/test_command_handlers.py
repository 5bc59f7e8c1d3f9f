"""Tests for gripper command handlers and the execute_command boundary."""

import pytest

from gripper.control import (
    CommandResult,
    CommandSettings,
    GenericCommand,
    GenericCommandResult,
    Grasp,
    Home,
    Move,
    Stop,
    execute_command,
)
from gripper.control.handlers import (
    NEGATIVE_WIDTH,
    NOT_GRASPED,
    WIDTH_NOT_REACHED,
    WIDTH_OUT_OF_RANGE,
)
from gripper.interface import DeviceError, SimulatedGripper

from conftest import make_mock_device, make_state


class TestHomeStop:
    def test_home_success(self):
        device = make_mock_device()
        result = execute_command(device, Home())
        assert result == CommandResult(success=True)
        device.home.assert_called_once()

    def test_home_fault(self):
        """Device fault during homing aborts only that command."""
        device = make_mock_device()
        device.home.side_effect = DeviceError("connection lost")
        result = execute_command(device, Home())
        assert result.success is False
        assert result.error == "connection lost"
        assert result.fault is True

    def test_stop_success(self):
        device = make_mock_device()
        assert execute_command(device, Stop()).success is True
        device.stop.assert_called_once()

    def test_stop_fault(self):
        device = make_mock_device()
        device.stop.side_effect = DeviceError("stop rejected")
        result = execute_command(device, Stop())
        assert result.success is False
        assert result.fault is True


class TestMove:
    def test_within_tolerance(self):
        device = make_mock_device()
        device.move.return_value = 0.041
        result = execute_command(device, Move(width=0.04, speed=0.1))
        assert result == CommandResult(success=True)
        device.move.assert_called_once_with(0.04, 0.1)

    def test_tolerance_boundary_is_inclusive(self):
        device = make_mock_device()
        device.move.return_value = 0.5
        settings = CommandSettings(width_tolerance=0.25)
        assert execute_command(device, Move(width=0.75, speed=0.1), settings).success is True

    def test_width_not_reached(self):
        device = make_mock_device()
        device.move.return_value = 0.02
        result = execute_command(device, Move(width=0.04, speed=0.1))
        assert result.success is False
        assert result.error == WIDTH_NOT_REACHED
        assert result.fault is False

    def test_negative_width_rejected_without_device_call(self):
        device = make_mock_device()
        result = execute_command(device, Move(width=-0.01, speed=0.1))
        assert result.success is False
        assert result.error == NEGATIVE_WIDTH
        assert result.fault is False
        device.move.assert_not_called()

    def test_nan_width_rejected(self):
        device = make_mock_device()
        result = execute_command(device, Move(width=float("nan"), speed=0.1))
        assert result.error == NEGATIVE_WIDTH

    def test_device_fault(self):
        device = make_mock_device()
        device.move.side_effect = DeviceError("motion aborted by stop")
        result = execute_command(device, Move(width=0.04, speed=0.1))
        assert result == CommandResult(success=False, error="motion aborted by stop", fault=True)

    def test_custom_tolerance(self):
        device = make_mock_device()
        device.move.return_value = 0.035
        settings = CommandSettings(width_tolerance=0.001)
        assert execute_command(device, Move(width=0.04, speed=0.1), settings).success is False


class TestGrasp:
    def test_grasped_within_band(self):
        device = make_mock_device()
        device.grasp.return_value = make_state(width=0.032, is_grasped=True)
        result = execute_command(device, Grasp(width=0.03, speed=0.1, force=20.0))
        assert result.success is True
        device.grasp.assert_called_once_with(0.03, 0.1, 20.0, 0.005, 0.005)

    def test_not_grasped(self):
        device = make_mock_device()
        device.grasp.return_value = make_state(width=0.03, is_grasped=False)
        result = execute_command(device, Grasp(width=0.03, speed=0.1, force=20.0))
        assert result.success is False
        assert result.error == NOT_GRASPED
        assert result.fault is False

    def test_grasped_outside_band(self):
        device = make_mock_device()
        device.grasp.return_value = make_state(width=0.02, is_grasped=True)
        result = execute_command(device, Grasp(width=0.03, speed=0.1, force=20.0))
        assert result.success is False
        assert result.error == NOT_GRASPED

    def test_asymmetric_band(self):
        device = make_mock_device()
        device.grasp.return_value = make_state(width=0.039, is_grasped=True)
        command = Grasp(width=0.03, speed=0.1, force=20.0, epsilon_inner=0.0, epsilon_outer=0.01)
        assert execute_command(device, command).success is True

    def test_device_fault(self):
        device = make_mock_device()
        device.grasp.side_effect = DeviceError("overheated")
        result = execute_command(device, Grasp(width=0.03, speed=0.1, force=20.0))
        assert result.fault is True
        assert result.error == "overheated"


class TestGenericCommand:
    def test_out_of_range(self):
        device = make_mock_device(make_state(width=0.05, max_width=0.08))
        result = execute_command(device, GenericCommand(position=0.05, max_effort=0.0))
        assert isinstance(result, GenericCommandResult)
        assert result.success is False
        assert result.error == WIDTH_OUT_OF_RANGE
        assert result.position == pytest.approx(0.025)
        device.move.assert_not_called()
        device.grasp.assert_not_called()

    def test_negative_position_out_of_range(self):
        device = make_mock_device()
        result = execute_command(device, GenericCommand(position=-0.01, max_effort=0.0))
        assert result.error == WIDTH_OUT_OF_RANGE

    def test_already_at_position(self):
        device = make_mock_device(make_state(width=0.05))
        result = execute_command(device, GenericCommand(position=0.02500001, max_effort=10.0))
        assert result.success is True
        assert result.reached_goal is True
        device.move.assert_not_called()
        device.grasp.assert_not_called()

    def test_zero_effort_moves(self):
        device = make_mock_device(make_state(width=0.05))
        device.move.return_value = 0.02
        result = execute_command(device, GenericCommand(position=0.01, max_effort=0.0))
        assert result.success is True
        device.move.assert_called_once_with(0.02, 0.1)
        device.grasp.assert_not_called()

    def test_opening_with_effort_moves(self):
        device = make_mock_device(make_state(width=0.02))
        device.move.return_value = 0.06
        result = execute_command(device, GenericCommand(position=0.03, max_effort=20.0))
        assert result.success is True
        device.move.assert_called_once()
        device.grasp.assert_not_called()

    def test_closing_with_effort_grasps(self):
        device = make_mock_device(make_state(width=0.05))
        device.grasp.return_value = make_state(width=0.02, is_grasped=True)
        settings = CommandSettings(default_speed=0.05, grasp_epsilon_inner=0.01, grasp_epsilon_outer=0.02)
        execute_command(device, GenericCommand(position=0.01, max_effort=15.0), settings)
        device.grasp.assert_called_once_with(0.02, 0.05, 15.0, 0.01, 0.02)

    def test_reports_final_position(self):
        gripper = SimulatedGripper(time_scale=0.0, object_width=0.03)
        gripper.connect()
        result = execute_command(gripper, GenericCommand(position=0.014, max_effort=10.0))
        assert result.success is True
        assert result.position == pytest.approx(0.015)
        assert result.reached_goal is True
        assert result.effort == 0.0
        assert result.stalled is False

    def test_failed_grasp_not_reached(self):
        gripper = SimulatedGripper(time_scale=0.0)
        gripper.connect()
        result = execute_command(gripper, GenericCommand(position=0.01, max_effort=10.0))
        assert result.success is False
        assert result.error == NOT_GRASPED
        assert result.reached_goal is False

    def test_fault_returns_generic_result(self):
        device = make_mock_device()
        device.read_state.side_effect = DeviceError("bus timeout")
        result = execute_command(device, GenericCommand(position=0.01, max_effort=0.0))
        assert isinstance(result, GenericCommandResult)
        assert result.fault is True
        assert result.error == "bus timeout"


class TestExecuteCommand:
    def test_unknown_command_type(self):
        with pytest.raises(TypeError, match="Unsupported command type"):
            execute_command(make_mock_device(), object())

    def test_non_device_errors_propagate(self):
        device = make_mock_device()
        device.home.side_effect = RuntimeError("driver bug")
        with pytest.raises(RuntimeError):
            execute_command(device, Home())

    def test_fault_is_logged(self, caplog):
        device = make_mock_device()
        device.home.side_effect = DeviceError("connection lost")
        with caplog.at_level("ERROR", logger="gripper.control.handlers"):
            execute_command(device, Home())
        assert "connection lost" in caplog.text
