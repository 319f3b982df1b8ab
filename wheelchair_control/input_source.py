"""Tick input sources: the encoder board over serial, or the keyboard.

Exactly one source is active per run. It is chosen once at start-up by
probing the serial port; the control loop then polls it every frame.

Encoder board wire format, one record per line:
    "Left : <int> , Right: <int>"
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Protocol, Set, Tuple, Union

import serial

from .config import (
    MANUAL_KEY_BINDINGS,
    MAX_RECORD_BYTES,
    SERIAL_BAUD_RATE,
    SERIAL_PORT,
    SERIAL_TIMEOUT_SECONDS,
)
from .encoder import Impulse, TickAccumulator


def parse_tick_record(line: str) -> Tuple[int, int]:
    """Parse one encoder record into absolute (left, right) tick counts.

    The record is split on commas; a token containing "Left" or "Right"
    supplies that wheel's value after its colon. Field order does not matter.
    A side whose token is missing or unparsable reads 0.

    Args:
        line: Raw record, e.g. "Left : -1 , Right: 2"

    Returns:
        Tuple of (left_ticks, right_ticks)

    Example:
        >>> parse_tick_record("Lft: abc, Right: 2")
        (0, 2)
    """
    left_ticks = 0
    right_ticks = 0

    for part in line.split(","):
        if "Left" in part:
            side = "Left"
        elif "Right" in part:
            side = "Right"
        else:
            if part.strip():
                logging.debug(f"Ignoring unrecognised tick token: {part.strip()!r}")
            continue

        try:
            value = int(part.split(":")[1].strip())
        except (IndexError, ValueError) as e:
            logging.warning(f"Data parse error: {side} field {part.strip()!r} ({e})")
            continue

        if side == "Left":
            left_ticks = value
        else:
            right_ticks = value

    return left_ticks, right_ticks


class LineTransport(Protocol):
    """Anything that yields one raw line per call (serial.Serial satisfies this)."""

    def readline(self) -> Union[bytes, str]: ...


class KeySource(Protocol):
    def is_pressed(self, key: str) -> bool: ...


class InputSource(ABC):
    """Source of wheel ticks polled once per frame."""

    name: str = "input"

    @abstractmethod
    def poll(self, accumulator: TickAccumulator) -> None:
        """Feed whatever arrived since the last frame into the accumulator."""

    def close(self) -> None:
        pass


class HardwareFeed(InputSource):
    """Reads absolute tick counts from the encoder board, one line per frame.

    An empty read means the transport timed out and there is nothing new this
    frame. A read cut short by the timeout has no trailing newline; it is held
    back and completed by later reads, so only whole records are parsed. A
    failing transport is logged and treated the same way as a timeout.
    """

    name = "hardware"

    def __init__(self, transport: LineTransport) -> None:
        self.transport = transport
        self.last_reading: Optional[Tuple[int, int]] = None
        self.lines_read: int = 0
        self._pending = b""

    def poll(self, accumulator: TickAccumulator) -> None:
        try:
            raw = self.transport.readline()
        except serial.SerialException as e:
            logging.warning(f"Serial read failed: {e}")
            return

        if isinstance(raw, str):
            raw = raw.encode("ascii", errors="replace")
        if not raw:
            return

        self._pending += raw
        if not self._pending.endswith(b"\n"):
            if len(self._pending) > MAX_RECORD_BYTES:
                logging.warning(f"Dropping {len(self._pending)} bytes with no line break")
                self._pending = b""
            return

        line, self._pending = self._pending, b""
        data = line.decode("ascii", errors="replace").strip()
        if not data:
            return

        logging.debug(f"Raw Data: {data}")
        left_ticks, right_ticks = parse_tick_record(data)
        accumulator.record_reading(left_ticks, right_ticks)

        self.last_reading = (left_ticks, right_ticks)
        self.lines_read += 1

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()


class KeyboardState:
    """Set of currently held keys, fed by a GUI key event handler."""

    def __init__(self) -> None:
        self._pressed: Set[str] = set()

    def press(self, key: Optional[str]) -> None:
        if key:
            self._pressed.add(key.lower())

    def release(self, key: Optional[str]) -> None:
        if key:
            self._pressed.discard(key.lower())

    def clear(self) -> None:
        self._pressed.clear()

    def is_pressed(self, key: str) -> bool:
        return key.lower() in self._pressed


class ManualFeed(InputSource):
    """Turns four held-key signals into +/-1 tick impulses.

    Keys are checked in the order left-forward, left-backward, right-forward,
    right-backward; each impulse overwrites its wheel's delta, so when both
    keys of one wheel are held the backward key wins.
    """

    name = "manual"

    _ORDER: Iterable[Tuple[str, Impulse]] = (
        ("left_forward", Impulse.LEFT_FORWARD),
        ("left_backward", Impulse.LEFT_BACKWARD),
        ("right_forward", Impulse.RIGHT_FORWARD),
        ("right_backward", Impulse.RIGHT_BACKWARD),
    )

    def __init__(self, keys: KeySource, bindings: Optional[Dict[str, str]] = None) -> None:
        self.keys = keys
        self.bindings = dict(MANUAL_KEY_BINDINGS if bindings is None else bindings)
        missing = [signal for signal, _ in self._ORDER if signal not in self.bindings]
        if missing:
            raise ValueError(f"Manual key bindings missing: {', '.join(missing)}")

    def poll(self, accumulator: TickAccumulator) -> None:
        for signal, impulse in self._ORDER:
            if self.keys.is_pressed(self.bindings[signal]):
                accumulator.record_impulse(impulse)


def open_serial_transport(
    port: str = SERIAL_PORT,
    baudrate: int = SERIAL_BAUD_RATE,
    timeout: float = SERIAL_TIMEOUT_SECONDS,
) -> Optional[serial.Serial]:
    """Try to open the encoder board's serial port.

    Returns:
        An open serial.Serial, or None if the device is not available.
    """
    try:
        transport = serial.Serial(port, baudrate, timeout=timeout)
    except serial.SerialException as e:
        logging.warning(f"Serial port {port} unavailable: {e}")
        return None

    logging.info(f"Serial Port Opened: {port} @ {baudrate} baud")
    return transport


def select_input_source(
    transport: Optional[LineTransport],
    keys: Optional[KeySource] = None,
    bindings: Optional[Dict[str, str]] = None,
) -> InputSource:
    """Pick the hardware feed when a transport is connected, else the manual feed."""
    if transport is not None:
        return HardwareFeed(transport)
    if keys is None:
        keys = KeyboardState()
    return ManualFeed(keys, bindings)
