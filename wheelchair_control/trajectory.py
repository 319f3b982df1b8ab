"""Motion smoothing for the wheelchair pose.

Each motion command becomes a short trajectory from the current pose to the
commanded pose, interpolated over a fixed duration so the vehicle glides
rather than jumping once per sampling window.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .config import TRAJECTORY_DURATION
from .geometry import Pose, apply_offset, interpolate_pose
from .model import MotionOffset


class TrajectoryState(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class Trajectory:
    """One in-flight interpolation between two poses."""

    initial_pose: Pose
    target_pose: Pose
    duration: float
    elapsed: float = 0.0

    @property
    def progress(self) -> float:
        """Interpolation parameter t = elapsed / duration, clamped to [0, 1]."""
        return min(max(self.elapsed / self.duration, 0.0), 1.0)

    @property
    def finished(self) -> bool:
        return self.elapsed >= self.duration


class TrajectoryGenerator:
    """Two-state machine (IDLE, RUNNING) that smooths motion commands into poses.

    A new command always replaces the running trajectory. The replacement
    starts from wherever the vehicle currently is, so an interrupted
    trajectory is abandoned at its intermediate pose rather than rewound or
    completed.

        IDLE    --start()-->          RUNNING
        RUNNING --start()-->          RUNNING  (re-based on current pose)
        RUNNING --elapsed>=duration-> IDLE     (pose snapped to target)

    Attributes:
        pose: Current vehicle pose, written on every advance
        duration: Interpolation time per command (seconds)
        trajectory: Active trajectory, None while idle
    """

    def __init__(self, initial_pose: Optional[Pose] = None, duration: float = TRAJECTORY_DURATION):
        """Initialize the generator.

        Args:
            initial_pose: Starting pose of the vehicle (default: origin, facing +x)
            duration: Interpolation time per command in seconds. Must be finite and > 0.

        Raises:
            ValueError: If duration is not finite and positive.
        """
        if not math.isfinite(duration) or duration <= 0:
            raise ValueError(f"Trajectory duration must be a finite value > 0, got {duration}")

        self.duration = duration
        self.pose: Pose = initial_pose.copy() if initial_pose is not None else Pose()
        self.trajectory: Optional[Trajectory] = None
        self.superseded_count: int = 0

    @property
    def state(self) -> TrajectoryState:
        return TrajectoryState.IDLE if self.trajectory is None else TrajectoryState.RUNNING

    def start(self, offset: MotionOffset) -> Trajectory:
        """Begin a trajectory from the current pose to the pose reached by `offset`.

        Any running trajectory is discarded without completing it.

        Args:
            offset: Forward translation and yaw relative to the current pose

        Returns:
            The new active trajectory (elapsed = 0)
        """
        if self.trajectory is not None:
            self.superseded_count += 1
            logging.debug(
                f"Trajectory superseded at t={self.trajectory.progress:.2f} "
                f"({self.superseded_count} total)"
            )

        initial_pose = self.pose.copy()
        self.trajectory = Trajectory(
            initial_pose=initial_pose,
            target_pose=apply_offset(initial_pose, offset),
            duration=self.duration,
        )
        return self.trajectory

    def advance(self, dt: float) -> Pose:
        """Step the active trajectory by dt seconds and return the current pose.

        While idle the pose is returned unchanged.

        Args:
            dt: Real time since the previous step (seconds)

        Returns:
            Current vehicle pose
        """
        trajectory = self.trajectory
        if trajectory is None:
            return self.pose

        trajectory.elapsed += dt
        if trajectory.finished:
            # Snap exactly onto the target to drop interpolation residue
            self.pose = trajectory.target_pose.copy()
            self.trajectory = None
        else:
            self.pose = interpolate_pose(
                trajectory.initial_pose, trajectory.target_pose, trajectory.progress
            )
        return self.pose

    def reset(self, pose: Optional[Pose] = None) -> None:
        """Drop any running trajectory and optionally teleport to `pose`."""
        self.trajectory = None
        self.superseded_count = 0
        if pose is not None:
            self.pose = pose.copy()

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information for logging and debugging.

        Returns:
            Dictionary containing state, progress and current heading
        """
        trajectory = self.trajectory
        return {
            "state": self.state.value,
            "elapsed": trajectory.elapsed if trajectory else 0.0,
            "progress": trajectory.progress if trajectory else 1.0,
            "yaw": self.pose.yaw,
            "superseded_count": self.superseded_count,
        }
