import math

import pytest

from wheelchair_control.config import KinematicParameters
from wheelchair_control.encoder import Impulse, SamplingGate, TickAccumulator


def test_readings_accumulate_differences():
    acc = TickAccumulator()
    acc.record_reading(2, 1)
    acc.record_reading(5, 1)
    acc.record_reading(4, 3)
    assert (acc.delta_left, acc.delta_right) == (4, 3)
    assert (acc.prev_left_ticks, acc.prev_right_ticks) == (4, 3)


def test_consume_resets_deltas_but_keeps_previous_reading():
    acc = TickAccumulator()
    acc.record_reading(10, -4)
    assert acc.consume() == (10, -4)
    assert (acc.delta_left, acc.delta_right) == (0, 0)

    acc.record_reading(12, -4)
    assert acc.consume() == (2, 0)


def test_impulses_overwrite_instead_of_accumulating():
    acc = TickAccumulator()
    acc.record_impulse(Impulse.LEFT_FORWARD)
    acc.record_impulse(Impulse.LEFT_FORWARD)
    acc.record_impulse(Impulse.RIGHT_BACKWARD)
    assert (acc.delta_left, acc.delta_right) == (1, -1)

    acc.record_impulse(Impulse.LEFT_BACKWARD)
    assert acc.delta_left == -1


def test_impulse_overwrites_hardware_delta():
    acc = TickAccumulator()
    acc.record_reading(6, 6)
    acc.record_impulse(Impulse.RIGHT_FORWARD)
    assert acc.consume() == (6, 1)


def test_gate_waits_for_full_time_slice():
    acc = TickAccumulator()
    gate = SamplingGate(acc, KinematicParameters(time_slice=0.125))
    acc.record_reading(3, 3)

    assert gate.poll(0.0625) is None
    assert (acc.delta_left, acc.delta_right) == (3, 3)

    command = gate.poll(0.125)
    assert command is not None
    assert (command.delta_left, command.delta_right) == (3, 3)
    assert gate.last_update_time == 0.125
    assert (acc.delta_left, acc.delta_right) == (0, 0)


def test_gate_converts_ticks_to_distance():
    acc = TickAccumulator()
    gate = SamplingGate(acc, KinematicParameters(wheel_radius=0.3, ticks_per_revolution=30))
    acc.record_reading(3, -6)

    command = gate.poll(1.0)
    assert command.left_distance == pytest.approx(2 * math.pi * 0.3 * 3 / 30)
    assert command.right_distance == pytest.approx(-2 * 2 * math.pi * 0.3 * 3 / 30)


def test_gate_emits_zero_command_when_nothing_moved():
    acc = TickAccumulator()
    gate = SamplingGate(acc, KinematicParameters())
    command = gate.poll(0.5)
    assert command.left_distance == 0.0
    assert command.right_distance == 0.0


def test_gate_measures_from_last_boundary():
    acc = TickAccumulator()
    gate = SamplingGate(acc, KinematicParameters(time_slice=0.25), start_time=1.0)
    assert gate.poll(1.125) is None
    assert gate.poll(1.25) is not None
    assert gate.poll(1.375) is None
    assert gate.poll(1.5) is not None
