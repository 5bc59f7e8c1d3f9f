"""Tests for the SimulatedGripper adapter."""

import threading
import time

import pytest

from gripper.interface import MOTION_ABORTED, DeviceError, SimulatedGripper


class TestSimulatedGripperBasic:
    """Connection lifecycle and initial state."""

    def test_creation_defaults(self):
        gripper = SimulatedGripper()
        gripper.connect()
        state = gripper.read_state()
        assert state.width == pytest.approx(0.08)
        assert state.max_width == pytest.approx(0.08)
        assert state.is_grasped is False
        assert state.temperature == pytest.approx(30.0)

    def test_requires_connection(self):
        gripper = SimulatedGripper()
        with pytest.raises(DeviceError, match="not connected"):
            gripper.read_state()

    def test_connect_disconnect(self):
        gripper = SimulatedGripper()
        gripper.connect()
        assert gripper.is_connected is True
        gripper.disconnect()
        assert gripper.is_connected is False

    def test_invalid_max_width(self):
        with pytest.raises(ValueError):
            SimulatedGripper(max_width=0.0)


class TestSimulatedGripperMotion:
    def test_move_reaches_target(self, sim_gripper):
        reached = sim_gripper.move(0.04, 0.1)
        assert reached == pytest.approx(0.04)
        assert sim_gripper.read_state().width == pytest.approx(0.04)

    def test_move_out_of_range(self, sim_gripper):
        with pytest.raises(DeviceError, match="outside"):
            sim_gripper.move(0.2, 0.1)
        with pytest.raises(DeviceError, match="outside"):
            sim_gripper.move(-0.01, 0.1)

    def test_move_rejects_non_positive_speed(self, sim_gripper):
        with pytest.raises(DeviceError, match="speed"):
            sim_gripper.move(0.04, 0.0)

    def test_move_blocked_by_object(self):
        gripper = SimulatedGripper(time_scale=0.0, object_width=0.02)
        gripper.connect()
        assert gripper.move(0.01, 0.1) == pytest.approx(0.02)
        # A plain move never reports a grasp
        assert gripper.read_state().is_grasped is False

    def test_home_opens_fully(self):
        gripper = SimulatedGripper(time_scale=0.0, initial_width=0.01)
        gripper.connect()
        gripper.home()
        assert gripper.read_state().width == pytest.approx(0.08)

    def test_grasp_object(self):
        gripper = SimulatedGripper(time_scale=0.0, object_width=0.03)
        gripper.connect()
        state = gripper.grasp(0.03, 0.1, 20.0, 0.005, 0.005)
        assert state.is_grasped is True
        assert state.width == pytest.approx(0.03)

    def test_grasp_without_object(self, sim_gripper):
        state = sim_gripper.grasp(0.03, 0.1, 20.0, 0.005, 0.005)
        assert state.is_grasped is False
        assert state.width == pytest.approx(0.025)

    def test_opening_clears_grasp(self):
        gripper = SimulatedGripper(time_scale=0.0, object_width=0.03)
        gripper.connect()
        gripper.grasp(0.03, 0.1, 20.0, 0.005, 0.005)
        gripper.move(0.06, 0.1)
        assert gripper.read_state().is_grasped is False


class TestSimulatedGripperFaults:
    def test_fail_next_is_one_shot(self, sim_gripper):
        sim_gripper.fail_next("home", "connection lost")
        with pytest.raises(DeviceError, match="connection lost"):
            sim_gripper.home()
        sim_gripper.home()

    def test_fail_next_unknown_operation(self, sim_gripper):
        with pytest.raises(ValueError, match="Unknown operation"):
            sim_gripper.fail_next("explode", "boom")

    def test_read_state_fault(self, sim_gripper):
        sim_gripper.fail_next("read_state", "bus timeout")
        with pytest.raises(DeviceError, match="bus timeout"):
            sim_gripper.read_state()
        assert sim_gripper.read_state().width == pytest.approx(0.08)


class TestSimulatedGripperStop:
    """stop() preempts motions from another thread."""

    def _run_in_thread(self, fn):
        errors = []

        def target():
            try:
                fn()
            except DeviceError as e:
                errors.append(e)

        t = threading.Thread(target=target)
        t.start()
        return t, errors

    def test_stop_aborts_running_move(self, slow_sim_gripper):
        t, errors = self._run_in_thread(lambda: slow_sim_gripper.move(0.0, 0.1))
        time.sleep(0.1)
        assert slow_sim_gripper.motion_in_progress
        slow_sim_gripper.stop()
        t.join(timeout=2.0)

        assert not t.is_alive()
        assert len(errors) == 1
        assert str(errors[0]) == MOTION_ABORTED
        width = slow_sim_gripper.read_state().width
        assert 0.0 < width < 0.08

    def test_abort_logs_reached_width(self, slow_sim_gripper, caplog):
        t, errors = self._run_in_thread(lambda: slow_sim_gripper.move(0.0, 0.1))
        time.sleep(0.1)
        with caplog.at_level("INFO", logger="gripper.interface.simulated_gripper"):
            slow_sim_gripper.stop()
            t.join(timeout=2.0)

        width = slow_sim_gripper.read_state().width
        aborted = [r for r in caplog.records if "motion aborted" in r.getMessage()]
        assert len(aborted) == 1
        assert aborted[0].getMessage().endswith(f"{width:.4f} m")

    def test_stop_aborts_queued_motion(self, slow_sim_gripper):
        t1, errors1 = self._run_in_thread(lambda: slow_sim_gripper.move(0.0, 0.1))
        time.sleep(0.05)
        t2, errors2 = self._run_in_thread(lambda: slow_sim_gripper.move(0.08, 0.1))
        time.sleep(0.05)
        slow_sim_gripper.stop()
        t1.join(timeout=2.0)
        t2.join(timeout=2.0)

        assert [str(e) for e in errors1] == [MOTION_ABORTED]
        assert [str(e) for e in errors2] == [MOTION_ABORTED]

    def test_motion_after_stop_runs(self, sim_gripper):
        sim_gripper.stop()
        assert sim_gripper.move(0.04, 0.1) == pytest.approx(0.04)

    def test_read_state_during_motion(self, slow_sim_gripper):
        t, _ = self._run_in_thread(lambda: slow_sim_gripper.move(0.0, 0.1))
        time.sleep(0.1)
        start = time.monotonic()
        state = slow_sim_gripper.read_state()
        elapsed = time.monotonic() - start
        slow_sim_gripper.stop()
        t.join(timeout=2.0)

        assert elapsed < 0.05
        assert state.width < 0.08
