"""Shared plotting utilities and styles for wheelchair visualizations.

This module provides:
- Colour scheme and colormap
- CSV data loading functions
- Common plot styling functions

All visualization modules should import from this module to ensure consistency.
"""

import csv
from pathlib import Path
from typing import Dict, Iterable, List, Union

import numpy as np
from matplotlib.axes import Axes
from matplotlib.colors import LinearSegmentedColormap

from .config import (
    COLOR_BLUE,
    COLOR_CREAM,
    COLOR_DARK_BLUE,
    COLOR_ORANGE,
    COLOR_TAUPE,
)

__all__ = [
    "COLOR_ORANGE",
    "COLOR_BLUE",
    "COLOR_CREAM",
    "COLOR_TAUPE",
    "COLOR_DARK_BLUE",
    "TIME_CMAP",
    "load_csv_to_dict",
    "style_axis",
    "add_legend",
]

TIME_CMAP = LinearSegmentedColormap.from_list("wheelchair_time", [COLOR_ORANGE, COLOR_BLUE])
"""Colormap for time-coloured trajectories (orange at start, blue at end)."""


def load_csv_to_dict(csv_path: Path, text_columns: Iterable[str] = ()) -> Dict[str, np.ndarray]:
    """Load CSV file into dictionary of numpy arrays.

    Numeric values become floats; non-numeric values (e.g. the trajectory
    state column) become NaN unless their column is listed in `text_columns`,
    in which case the column is kept as a string array.

    Args:
        csv_path: Path to CSV file.
        text_columns: Columns to keep as strings.

    Returns:
        Dictionary mapping column names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    text = set(text_columns)
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        data: Dict[str, List[Union[float, str]]] = {key: [] for key in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                if key in text:
                    data[key].append(value or "")
                    continue
                try:
                    data[key].append(float(value))
                except (ValueError, TypeError):
                    data[key].append(np.nan)

    return {
        key: np.array(values, dtype=str if key in text else float) for key, values in data.items()
    }


def style_axis(ax: Axes, title: str = "", xlabel: str = "", ylabel: str = "") -> None:
    """Apply the dark theme to a matplotlib axis."""
    if title:
        ax.set_title(title, fontweight="bold", color=COLOR_CREAM)
    if xlabel:
        ax.set_xlabel(xlabel, color=COLOR_CREAM)
    if ylabel:
        ax.set_ylabel(ylabel, color=COLOR_CREAM)

    ax.grid(True, alpha=0.2, color=COLOR_CREAM)
    ax.set_facecolor(COLOR_DARK_BLUE)
    ax.tick_params(colors=COLOR_CREAM, which="both")
    for spine in ax.spines.values():
        spine.set_edgecolor(COLOR_TAUPE)


def add_legend(ax: Axes, loc: str = "best") -> None:
    """Add a legend matching the dark theme."""
    ax.legend(
        loc=loc,
        framealpha=0.9,
        facecolor=COLOR_DARK_BLUE,
        edgecolor=COLOR_TAUPE,
        labelcolor=COLOR_CREAM,
    )
