"""
Visualization utilities for recorded wheelchair runs.

This module loads the pose and motion command CSV files written by
DataCollector. It plots the driven trajectory, the heading over time and the
per-window command timeline, and summarizes how often each turning regime
was used.
"""

from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .model import TurningRegime
from .plot_styles import (
    COLOR_BLUE,
    COLOR_CREAM,
    COLOR_DARK_BLUE,
    COLOR_ORANGE,
    COLOR_TAUPE,
    TIME_CMAP,
    add_legend,
    load_csv_to_dict,
    style_axis,
)

REGIME_COLORS = {
    TurningRegime.BOTH_WHEELS: COLOR_ORANGE,
    TurningRegime.LEFT_ONLY: COLOR_BLUE,
    TurningRegime.RIGHT_ONLY: COLOR_CREAM,
    TurningRegime.STATIONARY: COLOR_TAUPE,
}
"""Marker colour per turning regime in the command timeline."""


def parse_pose_data(filepath: Path) -> Dict[str, np.ndarray]:
    """Parse pose CSV data into numpy arrays.

    Args:
        filepath: Path to pose_data.csv.

    Returns:
        Dictionary with keys: 'timestamp', 'x', 'y', 'yaw' (rows with a missing
        value are dropped).

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing.
    """
    data = load_csv_to_dict(filepath)
    required = ("timestamp", "x", "y", "yaw")
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(f"Pose CSV missing columns: {missing}")

    valid = np.ones(len(data["timestamp"]), dtype=bool)
    for key in required:
        valid &= ~np.isnan(data[key])

    return {key: data[key][valid] for key in required}


def parse_command_data(filepath: Path) -> Dict[str, np.ndarray]:
    """Parse motion command CSV data into numpy arrays.

    Args:
        filepath: Path to command_data.csv.

    Returns:
        Dictionary with float arrays 'timestamp', 'delta_left', 'delta_right',
        'forward', 'yaw' and the string array 'regime'.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing.
    """
    data = load_csv_to_dict(filepath, text_columns=("regime",))
    required = ("timestamp", "delta_left", "delta_right", "forward", "yaw", "regime")
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(f"Command CSV missing columns: {missing}")

    return {key: data[key] for key in required}


def summarize_commands(command_data: Dict[str, np.ndarray]) -> Dict[str, float]:
    """Count commands per turning regime and total the commanded motion.

    Commanded totals are upper bounds on what was driven: a command that is
    replaced before its trajectory finishes only covers part of its offset.

    Returns:
        Dictionary with one count per regime value, plus 'commands',
        'commanded_distance' (meters, sum of |forward|) and
        'commanded_yaw' (radians, signed sum).
    """
    regimes = command_data["regime"]
    summary: Dict[str, float] = {
        regime.value: int(np.count_nonzero(regimes == regime.value)) for regime in TurningRegime
    }
    summary["commands"] = len(regimes)
    summary["commanded_distance"] = float(np.sum(np.abs(command_data["forward"])))
    summary["commanded_yaw"] = float(np.sum(command_data["yaw"]))
    return summary


def plot_pose_trajectory(
    pose_data: Dict[str, np.ndarray],
    title: str = "Wheelchair Trajectory",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot the driven path (x vs y) coloured by time.

    Args:
        pose_data: Dictionary containing 'timestamp', 'x' and 'y' arrays.
        title: Plot title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, ax = plt.subplots(figsize=(10, 8), facecolor=COLOR_DARK_BLUE)

    x = pose_data["x"]
    y = pose_data["y"]
    timestamps = pose_data["timestamp"]

    if len(timestamps) > 0:
        ax.plot(x, y, "-", color=COLOR_ORANGE, linewidth=1.5, alpha=0.6, label="Trajectory")
        scatter = ax.scatter(x, y, c=timestamps, cmap=TIME_CMAP, s=8, alpha=0.8, zorder=3)
        colorbar = plt.colorbar(scatter, ax=ax)
        colorbar.set_label("Time (s)", color=COLOR_CREAM)

        ax.plot(x[0], y[0], "o", color=COLOR_BLUE, markersize=8, label="Start", zorder=5,
                markeredgecolor="black")
        ax.plot(x[-1], y[-1], "o", color=COLOR_ORANGE, markersize=8, label="End", zorder=5,
                markeredgecolor="black")
        add_legend(ax)

    style_axis(ax, title=title, xlabel="X Position (m)", ylabel="Y Position (m)")
    ax.set_aspect("equal", adjustable="datalim")
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_heading(
    pose_data: Dict[str, np.ndarray],
    title: str = "Heading",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot the unwrapped heading (degrees) over time."""
    fig, ax = plt.subplots(figsize=(12, 5), facecolor=COLOR_DARK_BLUE)

    timestamps = pose_data["timestamp"]
    heading_deg = np.degrees(np.unwrap(pose_data["yaw"]))
    ax.plot(timestamps, heading_deg, color=COLOR_ORANGE, linewidth=1.5, label="Yaw")

    style_axis(ax, title=title, xlabel="Time (s)", ylabel="Heading (deg)")
    add_legend(ax)
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_command_timeline(
    command_data: Dict[str, np.ndarray],
    title: str = "Motion Commands",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot tick deltas per sampling window and the commanded yaw by regime.

    Args:
        command_data: Dictionary from parse_command_data.
        title: Plot title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, (ax_ticks, ax_yaw) = plt.subplots(
        2, 1, figsize=(12, 7), sharex=True, facecolor=COLOR_DARK_BLUE
    )
    timestamps = command_data["timestamp"]

    ax_ticks.step(timestamps, command_data["delta_left"], where="post",
                  color=COLOR_ORANGE, linewidth=1.5, label="Left")
    ax_ticks.step(timestamps, command_data["delta_right"], where="post",
                  color=COLOR_BLUE, linewidth=1.5, label="Right")
    style_axis(ax_ticks, title=title, ylabel="Ticks per window")
    add_legend(ax_ticks)

    yaw_deg = np.degrees(command_data["yaw"])
    plotted = False
    for regime in TurningRegime:
        mask = command_data["regime"] == regime.value
        if not np.any(mask):
            continue
        ax_yaw.scatter(timestamps[mask], yaw_deg[mask], s=14, color=REGIME_COLORS[regime],
                       label=regime.value.replace("_", " "), zorder=3)
        plotted = True

    style_axis(ax_yaw, xlabel="Time (s)", ylabel="Commanded yaw (deg)")
    if plotted:
        add_legend(ax_yaw)
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> None:
    """Generate summary plots for a complete run.

    The command timeline is drawn when the run has a command_data.csv.

    Args:
        run_dir: Directory containing pose_data.csv and command_data.csv.
        save_plots: If True, save plots to run directory.
        show_plots: If True, display plots interactively.

    Raises:
        FileNotFoundError: If pose_data.csv is not found.
    """
    pose_data = parse_pose_data(run_dir / "pose_data.csv")

    run_name = run_dir.name
    plot_pose_trajectory(
        pose_data,
        title=f"Trajectory - {run_name}",
        save_path=run_dir / "trajectory.png" if save_plots else None,
    )
    plot_heading(
        pose_data,
        title=f"Heading - {run_name}",
        save_path=run_dir / "heading.png" if save_plots else None,
    )

    command_path = run_dir / "command_data.csv"
    if command_path.exists():
        plot_command_timeline(
            parse_command_data(command_path),
            title=f"Motion Commands - {run_name}",
            save_path=run_dir / "commands.png" if save_plots else None,
        )

    if show_plots:
        plt.show()
    else:
        plt.close("all")
