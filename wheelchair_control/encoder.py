"""Encoder tick accumulation and time-slice sampling.

The TickAccumulator turns raw readings into net per-window tick deltas, and
the SamplingGate converts those deltas into a MotionCommand once every
time slice.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from .config import KinematicParameters
from .model import MotionCommand


class Impulse(Enum):
    """Directional impulse from the manual input device: (wheel, tick delta)."""

    LEFT_FORWARD = ("left", 1)
    LEFT_BACKWARD = ("left", -1)
    RIGHT_FORWARD = ("right", 1)
    RIGHT_BACKWARD = ("right", -1)

    @property
    def wheel(self) -> str:
        return self.value[0]

    @property
    def ticks(self) -> int:
        return self.value[1]


class TickAccumulator:
    """Accumulates encoder ticks between sampling windows.

    Hardware readings are absolute tick counts, so each one adds the
    difference to the previous reading. Manual impulses overwrite the delta of
    their wheel instead of adding to it.

    Attributes:
        prev_left_ticks: Last absolute left reading (never reset)
        prev_right_ticks: Last absolute right reading (never reset)
        delta_left: Left ticks accrued since the last window boundary
        delta_right: Right ticks accrued since the last window boundary
    """

    def __init__(self) -> None:
        self.prev_left_ticks: int = 0
        self.prev_right_ticks: int = 0
        self.delta_left: int = 0
        self.delta_right: int = 0

    def record_reading(self, left_ticks: int, right_ticks: int) -> None:
        """Add an absolute tick reading from the encoder board."""
        self.delta_left += left_ticks - self.prev_left_ticks
        self.delta_right += right_ticks - self.prev_right_ticks

        self.prev_left_ticks = left_ticks
        self.prev_right_ticks = right_ticks

    def record_impulse(self, impulse: Impulse) -> None:
        """Set one wheel's delta to +/-1 for the current window."""
        if impulse.wheel == "left":
            self.delta_left = impulse.ticks
        else:
            self.delta_right = impulse.ticks

    def consume(self) -> Tuple[int, int]:
        """Return the accrued deltas and reset them to zero."""
        deltas = (self.delta_left, self.delta_right)
        self.delta_left = 0
        self.delta_right = 0
        return deltas


class SamplingGate:
    """Emits one MotionCommand per elapsed time slice.

    Attributes:
        accumulator: Tick source read and reset at each window boundary
        params: Kinematic parameters (wheel radius, ticks/rev, time slice)
        last_update_time: Clock value of the last window boundary (seconds)
    """

    def __init__(
        self,
        accumulator: TickAccumulator,
        params: KinematicParameters,
        start_time: float = 0.0,
    ) -> None:
        self.accumulator = accumulator
        self.params = params
        self.last_update_time: float = start_time

    def poll(self, now: float) -> Optional[MotionCommand]:
        """Close the current window if a full time slice has elapsed.

        Args:
            now: Current clock value (seconds)

        Returns:
            The window's MotionCommand, or None if the slice has not elapsed yet.
        """
        if now - self.last_update_time < self.params.time_slice:
            return None

        delta_left, delta_right = self.accumulator.consume()
        command = MotionCommand.from_ticks(delta_left, delta_right, self.params)
        self.last_update_time = now

        if delta_left or delta_right:
            logging.debug(
                f"Window closed: dL={delta_left} dR={delta_right} "
                f"-> {command.left_distance:.4f}m / {command.right_distance:.4f}m"
            )
        return command
