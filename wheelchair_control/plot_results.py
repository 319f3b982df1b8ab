#!/usr/bin/env python3
"""
Browse and plot recorded wheelchair runs.

Every run directory written by DataCollector holds pose_data.csv and
command_data.csv. This script lists the runs with a one-line description of
each, prints the turning-regime breakdown of the selected run and plots it.
"""

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import List

from .config import TERM_BLUE, TERM_ORANGE, TERM_RESET
from .model import TurningRegime
from .visualization import (
    parse_command_data,
    parse_pose_data,
    plot_run_summary,
    summarize_commands,
)


def find_runs(results_dir: Path) -> List[Path]:
    """Return the run directories under results_dir, oldest first.

    Run names embed their start time (run_YYYYMMDD_HHMMSS), so name order is
    chronological.

    Raises:
        FileNotFoundError: If results_dir does not exist.
    """
    if not results_dir.exists():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    return sorted(d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_"))


def find_latest_run(results_dir: Path) -> Path:
    """Return the most recent run directory.

    Raises:
        FileNotFoundError: If the directory is missing or holds no runs.
    """
    runs = find_runs(results_dir)
    if not runs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")
    return runs[-1]


def describe_run(run_dir: Path) -> str:
    """One-line description of a run: length, command count and final pose."""
    try:
        pose_data = parse_pose_data(run_dir / "pose_data.csv")
    except (FileNotFoundError, ValueError) as e:
        return f"{run_dir.name}  (unreadable: {e})"

    if len(pose_data["timestamp"]) == 0:
        return f"{run_dir.name}  (no poses)"

    try:
        command_data = parse_command_data(run_dir / "command_data.csv")
        commands = int(summarize_commands(command_data)["commands"])
    except (FileNotFoundError, ValueError):
        commands = 0

    return (
        f"{run_dir.name}  {pose_data['timestamp'][-1]:7.2f}s  {commands:5d} commands  "
        f"end=({pose_data['x'][-1]:+.2f}, {pose_data['y'][-1]:+.2f}) "
        f"yaw={math.degrees(pose_data['yaw'][-1]):+.1f}°"
    )


def list_available_runs(results_dir: Path) -> None:
    """Log every run with its description."""
    try:
        runs = find_runs(results_dir)
    except FileNotFoundError as e:
        logging.error(str(e))
        return

    if not runs:
        logging.info(f"No run directories found in {results_dir}")
        return

    logging.info("Available runs:")
    for i, run_dir in enumerate(runs, 1):
        logging.info(f"  {i}. {describe_run(run_dir)}")


def log_regime_breakdown(run_dir: Path) -> None:
    """Log how many sampling windows fell into each turning regime."""
    try:
        summary = summarize_commands(parse_command_data(run_dir / "command_data.csv"))
    except (FileNotFoundError, ValueError) as e:
        logging.warning(f"{TERM_ORANGE}No command breakdown: {e}{TERM_RESET}")
        return

    total = int(summary["commands"])
    logging.info(f"{total} motion commands")
    for regime in TurningRegime:
        count = int(summary[regime.value])
        share = 100.0 * count / total if total else 0.0
        logging.info(f"  {regime.value:<12} {count:6d}  ({share:5.1f}%)")
    logging.info(
        f"Commanded distance {summary['commanded_distance']:.3f} m, "
        f"net commanded yaw {math.degrees(summary['commanded_yaw']):+.1f}°"
    )


def main(argv=None) -> None:
    """Main entry point for the plotting script."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        description="Browse and plot recorded wheelchair runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Plot the most recent run
  wheelchair-plot

  # Plot a specific run, saving trajectory.png, heading.png and commands.png
  wheelchair-plot --run run_20260114_184704 --save --no-show

  # List runs with their length, command count and final pose
  wheelchair-plot --list
        """,
    )
    parser.add_argument("--run", type=str, default=None,
                        help="Run directory to plot (default: most recent run)")
    parser.add_argument("--results-dir", type=str, default="results",
                        help="Directory holding the run_* directories (default: results)")
    parser.add_argument("--save", action="store_true",
                        help="Save plots as PNG files in the run directory")
    parser.add_argument("--no-show", action="store_true",
                        help="Do not open plot windows (useful with --save)")
    parser.add_argument("--list", action="store_true", help="List recorded runs and exit")

    args = parser.parse_args(argv)
    results_dir = Path(args.results_dir)

    if args.list:
        list_available_runs(results_dir)
        return

    if args.run:
        run_dir = results_dir / args.run
        if not run_dir.exists():
            logging.error(f"Run directory not found: {run_dir}")
            list_available_runs(results_dir)
            sys.exit(1)
    else:
        try:
            run_dir = find_latest_run(results_dir)
        except FileNotFoundError as e:
            logging.error(str(e))
            sys.exit(1)

    logging.info(f"{TERM_BLUE}{describe_run(run_dir)}{TERM_RESET}")
    log_regime_breakdown(run_dir)

    try:
        plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Cannot plot {run_dir.name}: {e}")
        sys.exit(1)

    if args.save:
        logging.info(f"{TERM_BLUE}✓ Saved plots to {run_dir}{TERM_RESET}")


if __name__ == "__main__":
    main()
