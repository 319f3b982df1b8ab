import logging

import pytest
import serial

from wheelchair_control.encoder import TickAccumulator
from wheelchair_control.input_source import (
    HardwareFeed,
    KeyboardState,
    ManualFeed,
    open_serial_transport,
    parse_tick_record,
    select_input_source,
)


class FakeTransport:
    """Serves queued lines; an exhausted queue behaves like a read timeout."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.closed = False

    def readline(self):
        if not self.lines:
            return b""
        line = self.lines.pop(0)
        if isinstance(line, Exception):
            raise line
        return line

    def close(self):
        self.closed = True


@pytest.mark.parametrize(
    "line, expected",
    [
        ("Left : -1 , Right: -1", (-1, -1)),
        ("Left:12,Right:7", (12, 7)),
        ("  Left :   4 ,   Right :  -9  ", (4, -9)),
        ("Right: 5, Left: 2", (2, 5)),
        ("Left: 8", (8, 0)),
        ("", (0, 0)),
    ],
)
def test_parse_tick_record(line, expected):
    assert parse_tick_record(line) == expected


def test_scenario_c_malformed_left_defaults_to_zero():
    assert parse_tick_record("Lft: abc, Right: 2") == (0, 2)


def test_unparsable_value_logs_diagnostic(caplog):
    with caplog.at_level(logging.WARNING):
        assert parse_tick_record("Left : abc , Right: 3") == (0, 3)
    assert "Data parse error" in caplog.text


def test_token_without_colon_reads_zero():
    assert parse_tick_record("Left 5, Right: 1") == (0, 1)


def test_hardware_feed_records_absolute_readings():
    acc = TickAccumulator()
    feed = HardwareFeed(FakeTransport([b"Left : 3 , Right: 1\r\n", "Left : 5 , Right: 1\n"]))
    feed.poll(acc)
    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (5, 1)
    assert feed.last_reading == (5, 1)
    assert feed.lines_read == 2


def test_hardware_feed_timeout_changes_nothing():
    acc = TickAccumulator()
    acc.record_reading(2, 2)
    feed = HardwareFeed(FakeTransport([]))
    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (2, 2)
    assert feed.lines_read == 0


def test_hardware_feed_holds_back_partial_lines():
    acc = TickAccumulator()
    feed = HardwareFeed(
        FakeTransport([b"Left : 5 , Right: 5\n", b"Left : 6 , Ri", b"ght: 6\n"])
    )
    feed.poll(acc)
    acc.consume()

    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (0, 0)
    assert feed.last_reading == (5, 5)

    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (1, 1)
    assert feed.last_reading == (6, 6)
    assert feed.lines_read == 2


def test_hardware_feed_completes_lines_split_by_serial_timeout():
    port = serial.serial_for_url("loop://", timeout=0.05)
    feed = HardwareFeed(port)
    acc = TickAccumulator()
    try:
        port.write(b"Left : 5 , Right: 5\n")
        feed.poll(acc)
        assert (acc.delta_left, acc.delta_right) == (5, 5)

        port.write(b"Left : 6 , Ri")
        feed.poll(acc)
        assert (acc.delta_left, acc.delta_right) == (5, 5)

        port.write(b"ght: 6\n")
        feed.poll(acc)
        assert (acc.delta_left, acc.delta_right) == (6, 6)
    finally:
        feed.close()


def test_hardware_feed_drops_runaway_partial_line(caplog):
    acc = TickAccumulator()
    feed = HardwareFeed(FakeTransport([b"x" * 300, b"Left: 2, Right: 2\n"]))
    with caplog.at_level(logging.WARNING):
        feed.poll(acc)
    assert "no line break" in caplog.text
    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (2, 2)


def test_hardware_feed_survives_serial_errors(caplog):
    acc = TickAccumulator()
    transport = FakeTransport([serial.SerialException("device unplugged"), b"Left: 1, Right: 1\n"])
    feed = HardwareFeed(transport)
    with caplog.at_level(logging.WARNING):
        feed.poll(acc)
    assert "Serial read failed" in caplog.text
    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (1, 1)


def test_hardware_feed_close_closes_transport():
    transport = FakeTransport([])
    HardwareFeed(transport).close()
    assert transport.closed


def test_manual_feed_maps_keys_to_impulses():
    keys = KeyboardState()
    feed = ManualFeed(keys)
    acc = TickAccumulator()

    keys.press("u")
    keys.press("K")
    feed.poll(acc)
    assert (acc.delta_left, acc.delta_right) == (1, -1)


def test_manual_feed_without_keys_leaves_deltas():
    acc = TickAccumulator()
    ManualFeed(KeyboardState()).poll(acc)
    assert (acc.delta_left, acc.delta_right) == (0, 0)


def test_manual_feed_backward_key_wins_on_same_wheel():
    keys = KeyboardState()
    keys.press("u")
    keys.press("j")
    acc = TickAccumulator()
    ManualFeed(keys).poll(acc)
    assert acc.delta_left == -1


def test_held_key_does_not_accumulate_across_frames():
    keys = KeyboardState()
    keys.press("i")
    feed = ManualFeed(keys)
    acc = TickAccumulator()
    for _ in range(5):
        feed.poll(acc)
    assert acc.delta_right == 1


def test_manual_feed_custom_bindings():
    keys = KeyboardState()
    keys.press("w")
    bindings = {
        "left_forward": "w",
        "left_backward": "s",
        "right_forward": "up",
        "right_backward": "down",
    }
    acc = TickAccumulator()
    ManualFeed(keys, bindings).poll(acc)
    assert acc.delta_left == 1


def test_manual_feed_rejects_incomplete_bindings():
    with pytest.raises(ValueError):
        ManualFeed(KeyboardState(), {"left_forward": "w"})


def test_keyboard_state_release_and_clear():
    keys = KeyboardState()
    keys.press("U")
    assert keys.is_pressed("u")
    keys.release("u")
    assert not keys.is_pressed("u")
    keys.press("i")
    keys.press(None)
    keys.clear()
    assert not keys.is_pressed("i")


def test_select_input_source():
    assert isinstance(select_input_source(FakeTransport([])), HardwareFeed)
    assert isinstance(select_input_source(None), ManualFeed)


def test_open_serial_transport_missing_device_returns_none(monkeypatch):
    def fail(*args, **kwargs):
        raise serial.SerialException("could not open port")

    monkeypatch.setattr(serial, "Serial", fail)
    assert open_serial_transport("/dev/does-not-exist") is None
