"""Data collection and CSV logging for wheelchair runs.

This module provides CSV data logging for:
- Motion commands (tick deltas, wheel distances, regime, offset) once per window
- Vehicle poses (position, heading, trajectory state) once per frame
"""

import csv
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, TextIO

from .geometry import Pose
from .model import MotionCommand, MotionOffset

COMMAND_HEADERS = [
    "timestamp",
    "delta_left",
    "delta_right",
    "left_distance",
    "right_distance",
    "regime",
    "forward",
    "yaw",
]

POSE_HEADERS = ["timestamp", "x", "y", "z", "yaw", "state"]


class DataCollector:
    """Manages CSV file creation and logging for wheelchair run data.

    Attributes:
        run_dir: Directory path for this run's output files.
        command_csv_file: File handle for motion command CSV.
        pose_csv_file: File handle for pose CSV.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.command_csv_file: Optional[TextIO] = None
        self.command_csv_writer: Any = None
        self.pose_csv_file: Optional[TextIO] = None
        self.pose_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.command_output_path: Path = self.run_dir / "command_data.csv"
        self.pose_output_path: Path = self.run_dir / "pose_data.csv"

    def setup(self) -> None:
        """Create the CSV files and write their headers.

        Must be called before writing data.
        """
        self.command_csv_file = open(self.command_output_path, "w", newline="")
        self.command_csv_writer = csv.writer(self.command_csv_file)
        self.command_csv_writer.writerow(COMMAND_HEADERS)
        self.command_csv_file.flush()

        self.pose_csv_file = open(self.pose_output_path, "w", newline="")
        self.pose_csv_writer = csv.writer(self.pose_csv_file)
        self.pose_csv_writer.writerow(POSE_HEADERS)
        self.pose_csv_file.flush()

    def log_command(self, timestamp: float, command: MotionCommand, offset: MotionOffset) -> None:
        """Log one sampling window's motion command and resulting offset."""
        if self.command_csv_writer is None:
            return
        self.command_csv_writer.writerow(
            [
                f"{timestamp:.4f}",
                command.delta_left,
                command.delta_right,
                f"{command.left_distance:.6f}",
                f"{command.right_distance:.6f}",
                offset.regime.value,
                f"{offset.forward:.6f}",
                f"{offset.yaw:.6f}",
            ]
        )
        self.command_csv_file.flush()

    def log_pose(self, timestamp: float, pose: Pose, state: str = "") -> None:
        """Log the vehicle pose for one frame."""
        if self.pose_csv_writer is None:
            return
        x, y, z = pose.position
        self.pose_csv_writer.writerow(
            [f"{timestamp:.4f}", f"{x:.6f}", f"{y:.6f}", f"{z:.6f}", f"{pose.yaw:.6f}", state]
        )

    def cleanup(self) -> None:
        """Flush and close all open files."""
        for handle in (self.command_csv_file, self.pose_csv_file):
            if handle is not None and not handle.closed:
                handle.flush()
                handle.close()
        self.command_csv_writer = None
        self.pose_csv_writer = None
