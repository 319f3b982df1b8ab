import asyncio
import csv
import json
import logging
import math

import pytest

from wheelchair_control.config import KinematicParameters
from wheelchair_control.controller import WheelchairController
from wheelchair_control.data_collector import DataCollector
from wheelchair_control.geometry import Pose
from wheelchair_control.input_source import HardwareFeed, KeyboardState, ManualFeed
from wheelchair_control.model import TurningRegime
from wheelchair_control.trajectory import TrajectoryState

# Binary-exact timings so window boundaries land on exact frames
DT = 0.0625
SLICE = 0.125
THREE_TICKS = 2 * math.pi * 0.3 * 0.1


class FakeTransport:
    def __init__(self, lines):
        self.lines = list(lines)

    def readline(self):
        return self.lines.pop(0) if self.lines else b""


class RecordingSink:
    def __init__(self):
        self.updates = []

    def update(self, pose, timestamp):
        self.updates.append((pose.copy(), timestamp))


class FakeWebSocket:
    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(message)


def make_controller(lines=(), duration=SLICE, **kwargs):
    params = KinematicParameters(time_slice=SLICE, trajectory_duration=duration)
    feed = HardwareFeed(FakeTransport(lines))
    return WheelchairController(params, feed, **kwargs)


def run_frames(controller, count):
    pose = None
    for _ in range(count):
        pose = controller.tick(DT)
    return pose


def test_scenario_a_hardware_straight_line():
    controller = make_controller([b"Left : 3 , Right: 3\n"])

    run_frames(controller, 1)
    assert controller.command_count == 0
    assert (controller.accumulator.delta_left, controller.accumulator.delta_right) == (3, 3)

    run_frames(controller, 1)
    assert controller.command_count == 1
    assert controller.last_offset.regime is TurningRegime.BOTH_WHEELS
    assert controller.last_offset.yaw == 0.0
    assert (controller.accumulator.delta_left, controller.accumulator.delta_right) == (0, 0)

    pose = run_frames(controller, 6)
    assert pose.position[0] == pytest.approx(THREE_TICKS)
    assert pose.position[1] == pytest.approx(0.0)
    assert pose.yaw == pytest.approx(0.0)


def test_trajectory_longer_than_window_is_cut_short():
    # The next (empty) window replaces the command halfway through
    controller = make_controller([b"Left : 3 , Right: 3\n"], duration=2 * SLICE)
    pose = run_frames(controller, 10)
    assert pose.position[0] == pytest.approx(THREE_TICKS / 2)
    assert controller.generator.superseded_count >= 1


def test_new_trajectory_advances_in_the_frame_it_starts():
    controller = make_controller([b"Left : 3 , Right: 3\n"], duration=2 * SLICE)
    run_frames(controller, 2)
    assert controller.generator.state is TrajectoryState.RUNNING
    assert controller.generator.trajectory.elapsed == DT


def test_scenario_b_hardware_left_pivot():
    controller = make_controller([b"Left : 3 , Right: 0\n"])
    pose = run_frames(controller, 4)
    assert pose.yaw == pytest.approx(-math.pi / 5)
    assert pose.position[0] == pytest.approx(THREE_TICKS / 2)


def test_readings_are_absolute_across_windows():
    lines = [b"Left : 3 , Right: 3\n", b"", b"Left : 6 , Right: 3\n"]
    controller = make_controller(lines)
    run_frames(controller, 2)
    assert (controller.last_command.delta_left, controller.last_command.delta_right) == (3, 3)
    run_frames(controller, 2)
    assert (controller.last_command.delta_left, controller.last_command.delta_right) == (3, 0)


def test_malformed_record_does_not_raise():
    # The unreadable left field reads 0, which undoes the previous left ticks
    controller = make_controller([b"Left : 2 , Right: 2\n", b"Lft: abc, Right: 4\n"])
    run_frames(controller, 2)
    assert controller.last_command.delta_left == 0
    assert controller.last_command.delta_right == 4


def test_manual_feed_drives_right_pivot():
    params = KinematicParameters(time_slice=SLICE, trajectory_duration=SLICE)
    keys = KeyboardState()
    controller = WheelchairController(params, ManualFeed(keys))

    keys.press("i")
    run_frames(controller, 2)
    keys.release("i")
    pose = run_frames(controller, 2)

    assert controller.last_offset.regime is TurningRegime.STATIONARY
    assert pose.yaw == pytest.approx(2 * math.pi / 30)
    assert pose.position[0] == pytest.approx(math.pi * 0.3 / 30, rel=1e-3)


def test_idle_controller_never_moves():
    start = Pose.from_planar(1.0, -1.0, 0.5)
    controller = make_controller([], initial_pose=start)
    pose = run_frames(controller, 20)
    assert pose.is_close(start, atol=0.0)
    assert controller.command_count == 10


def test_sinks_receive_every_frame():
    sink = RecordingSink()
    controller = make_controller([b"Left : 3 , Right: 3\n"], sinks=[sink])
    run_frames(controller, 5)
    assert len(sink.updates) == 5
    assert sink.updates[-1][1] == pytest.approx(5 * DT)


def test_run_is_recorded(tmp_path):
    collector = DataCollector(run_dir=str(tmp_path / "run_test"))
    controller = make_controller([b"Left : 3 , Right: 0\n"], data_collector=collector)
    with controller:
        run_frames(controller, 4)

    with open(collector.command_output_path, newline="") as f:
        commands = list(csv.DictReader(f))
    with open(collector.pose_output_path, newline="") as f:
        poses = list(csv.DictReader(f))

    assert [row["regime"] for row in commands] == ["left_only", "stationary"]
    assert int(commands[0]["delta_left"]) == 3
    assert len(poses) == 4
    assert float(poses[-1]["yaw"]) == pytest.approx(-math.pi / 5, abs=1e-5)


def test_rejects_bad_arguments():
    with pytest.raises(ValueError):
        make_controller(uri="http://localhost:8765")
    with pytest.raises(ValueError):
        make_controller(frame_interval=0.0)
    controller = make_controller()
    with pytest.raises(ValueError):
        controller.tick(-0.1)


def test_send_pose_publishes_json():
    controller = make_controller()
    websocket = FakeWebSocket()
    asyncio.run(controller.send_pose(websocket, Pose.from_planar(1.0, 2.0, 0.0)))
    message = json.loads(websocket.sent[0])
    assert message["message_type"] == "pose"
    assert message["position"] == [1.0, 2.0, 0.0]
    assert message["rotation"] == [1.0, 0.0, 0.0, 0.0]


def test_run_control_loop_stops_on_request(caplog):
    controller = make_controller([b"Left : 3 , Right: 3\n"], frame_interval=0.005)

    async def scenario():
        async def stop_soon():
            await asyncio.sleep(0.05)
            controller.stop()

        await asyncio.gather(controller.run_control_loop(), stop_soon())

    with caplog.at_level(logging.INFO):
        asyncio.run(scenario())
    assert controller.frame_count > 0
    assert controller.should_stop
    assert f"frames={controller.frame_count}" in caplog.text


def test_diagnostics():
    controller = make_controller([b"Left : 3 , Right: 3\n"])
    run_frames(controller, 2)
    diagnostics = controller.get_diagnostics()
    assert diagnostics["frames"] == 2
    assert diagnostics["commands"] == 1
    assert diagnostics["state"] == "running"


def test_log_diagnostics_reports_trajectory_state(caplog):
    controller = make_controller([b"Left : 3 , Right: 0\n"])
    run_frames(controller, 2)
    with caplog.at_level(logging.DEBUG):
        controller.log_diagnostics()
    assert "commands=1" in caplog.text
    assert "state=running" in caplog.text
