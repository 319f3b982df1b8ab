"""
Differential drive wheelchair kinematic model.

This module provides the forward kinematics for the wheelchair, converting
encoder tick deltas into wheel distances and then into a displacement of the
vehicle relative to its current pose.
"""

import math
from dataclasses import dataclass
from enum import Enum

from .config import KinematicParameters


class TurningRegime(Enum):
    """Which wheels moved during a sampling window."""

    BOTH_WHEELS = "both_wheels"
    LEFT_ONLY = "left_only"
    RIGHT_ONLY = "right_only"
    STATIONARY = "stationary"


@dataclass(frozen=True)
class MotionCommand:
    """Wheel motion accrued over one sampling window.

    Attributes:
        left_distance: Signed distance rolled by the left wheel (meters)
        right_distance: Signed distance rolled by the right wheel (meters)
        delta_left: Left wheel tick delta the distance was derived from
        delta_right: Right wheel tick delta the distance was derived from
    """

    left_distance: float
    right_distance: float
    delta_left: int
    delta_right: int

    @classmethod
    def from_ticks(
        cls, delta_left: int, delta_right: int, params: KinematicParameters
    ) -> "MotionCommand":
        """Build a command from raw tick deltas."""
        return cls(
            left_distance=ticks_to_distance(
                delta_left, params.wheel_radius, params.ticks_per_revolution
            ),
            right_distance=ticks_to_distance(
                delta_right, params.wheel_radius, params.ticks_per_revolution
            ),
            delta_left=delta_left,
            delta_right=delta_right,
        )


@dataclass(frozen=True)
class MotionOffset:
    """Displacement relative to the current pose.

    Attributes:
        forward: Translation along the vehicle's current forward axis (meters)
        yaw: Rotation about the vertical axis (radians, counter-clockwise positive)
        regime: Turning regime the offset was computed with
    """

    forward: float
    yaw: float
    regime: TurningRegime

    @property
    def is_zero(self) -> bool:
        return self.forward == 0.0 and self.yaw == 0.0


def ticks_to_distance(ticks: int, wheel_radius: float, ticks_per_revolution: float) -> float:
    """
    Convert an encoder tick count into the distance rolled by the wheel.

        distance = 2 * pi * r * (ticks / ticks_per_revolution)

    The mapping is linear, so it is odd in ticks: negating the ticks negates
    the distance.

    Args:
        ticks: Signed tick count
        wheel_radius: Wheel radius (meters)
        ticks_per_revolution: Encoder ticks per wheel revolution

    Returns:
        float: Signed distance in meters

    Example:
        >>> round(ticks_to_distance(3, 0.3, 30.0), 4)
        0.1885
    """
    return (2.0 * math.pi * wheel_radius) * (ticks / ticks_per_revolution)


def select_regime(delta_left: int, delta_right: int) -> TurningRegime:
    """Pick the turning regime from the tick deltas, both wheels taking priority."""
    if abs(delta_left) > 0 and abs(delta_right) > 0:
        return TurningRegime.BOTH_WHEELS
    if abs(delta_left) > 0:
        return TurningRegime.LEFT_ONLY
    if abs(delta_right) > 0:
        return TurningRegime.RIGHT_ONLY
    return TurningRegime.STATIONARY


def compute_motion_offset(command: MotionCommand, wheel_radius: float) -> MotionOffset:
    """
    Compute the vehicle displacement produced by one motion command.

    Regimes, in priority order:
        both wheels:  forward = (d_l + d_r) / 2
                      yaw     = (d_r - d_l) / (2 * r)
        left only:    yaw     = -d_l / r        (pivot, turns right)
                      forward = |d_l| / 2
        right only:   yaw     = +d_r / r        (pivot, turns left)
                      forward = |d_r| / 2
        neither:      no motion

    The single-wheel pivots divide by r rather than 2r. This matches the
    motion the wheelchair has always produced and is kept as is.

    Args:
        command: Wheel distances and tick deltas for one sampling window
        wheel_radius: Wheel radius (meters)

    Returns:
        MotionOffset: Forward translation and yaw relative to the current pose
    """
    regime = select_regime(command.delta_left, command.delta_right)
    left = command.left_distance
    right = command.right_distance

    if regime is TurningRegime.BOTH_WHEELS:
        forward = (left + right) / 2.0
        yaw = (right - left) / (2.0 * wheel_radius)
    elif regime is TurningRegime.LEFT_ONLY:
        yaw = -left / wheel_radius
        # Creep forward while pivoting, whichever way the wheel turned
        forward = abs(left) / 2.0
    elif regime is TurningRegime.RIGHT_ONLY:
        yaw = right / wheel_radius
        forward = abs(right) / 2.0
    else:
        forward = 0.0
        yaw = 0.0

    return MotionOffset(forward=forward, yaw=yaw, regime=regime)
