"""
Real-time top-down view of the wheelchair.

LivePoseView is a pose sink that draws the vehicle and its trail while the
control loop runs. Its window also captures key presses, so it doubles as
the keyboard device for the manual input feed.
"""

import logging
from collections import deque
from typing import Callable, Deque, Optional

import matplotlib.pyplot as plt
import numpy as np

from .config import LIVE_TRAIL_LENGTH, MANUAL_KEY_BINDINGS, TERM_BLUE, TERM_RESET
from .geometry import Pose
from .input_source import KeyboardState
from .plot_styles import COLOR_BLUE, COLOR_CREAM, COLOR_DARK_BLUE, COLOR_ORANGE, style_axis


class LivePoseView:
    """Live plot of the vehicle pose, fed once per frame.

    Attributes:
        keyboard: Held-key state updated from the window's key events.
        redraw_every: Redraw the canvas every N pose updates.
        view_extent: Half-width of the view window around the vehicle (meters).
        trail_length: Number of most recent poses drawn as the trail.
        closed: True once the window has been closed.
    """

    def __init__(
        self,
        keyboard: Optional[KeyboardState] = None,
        redraw_every: int = 3,
        view_extent: float = 3.0,
        trail_length: int = LIVE_TRAIL_LENGTH,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.keyboard = keyboard if keyboard is not None else KeyboardState()
        self.redraw_every = max(1, redraw_every)
        self.view_extent = view_extent
        self.on_close = on_close
        self.closed = False
        self._updates = 0
        self.trail_length = max(1, trail_length)
        self._trail_x: Deque[float] = deque(maxlen=self.trail_length)
        self._trail_y: Deque[float] = deque(maxlen=self.trail_length)

        # Matplotlib binds some of the drive keys (e.g. 'k' toggles log scale)
        drive_keys = set(MANUAL_KEY_BINDINGS.values())
        for name in [key for key in plt.rcParams if key.startswith("keymap.")]:
            plt.rcParams[name] = [k for k in plt.rcParams[name] if k not in drive_keys]

        plt.ion()
        self.fig, self.ax = plt.subplots(figsize=(8, 8), facecolor=COLOR_DARK_BLUE)
        self.fig.suptitle("Wheelchair - U/J left wheel, I/K right wheel", color=COLOR_CREAM)
        style_axis(self.ax, xlabel="X Position (m)", ylabel="Y Position (m)")
        self.ax.set_aspect("equal")

        (self.trail_line,) = self.ax.plot([], [], "-", color=COLOR_ORANGE, linewidth=1.5, alpha=0.7)
        (self.body_marker,) = self.ax.plot(
            [], [], "o", color=COLOR_BLUE, markersize=12, markeredgecolor="black"
        )
        (self.heading_line,) = self.ax.plot([], [], "-", color=COLOR_CREAM, linewidth=2.0)
        self.status_text = self.ax.text(
            0.02, 0.97, "", transform=self.ax.transAxes, color=COLOR_CREAM, va="top", fontsize=9
        )

        canvas = self.fig.canvas
        canvas.mpl_connect("key_press_event", lambda event: self.keyboard.press(event.key))
        canvas.mpl_connect("key_release_event", lambda event: self.keyboard.release(event.key))
        canvas.mpl_connect("close_event", self._handle_close)

        plt.show(block=False)
        logging.info(f"{TERM_BLUE}✓ Live view open{TERM_RESET}")

    def _handle_close(self, _event) -> None:
        self.closed = True
        self.keyboard.clear()
        if self.on_close is not None:
            self.on_close()

    def update(self, pose: Pose, timestamp: float) -> None:
        """Record the pose and redraw every `redraw_every` updates."""
        if self.closed:
            return

        x, y, _ = pose.position
        self._trail_x.append(float(x))
        self._trail_y.append(float(y))
        self._updates += 1
        if self._updates % self.redraw_every:
            return

        heading = pose.forward() * 0.4
        self.trail_line.set_data(list(self._trail_x), list(self._trail_y))
        self.body_marker.set_data([x], [y])
        self.heading_line.set_data([x, x + heading[0]], [y, y + heading[1]])
        self.status_text.set_text(
            f"t={timestamp:6.2f}s  x={x:+.3f}  y={y:+.3f}  yaw={np.degrees(pose.yaw):+7.1f}°"
        )

        extent = self.view_extent
        self.ax.set_xlim(x - extent, x + extent)
        self.ax.set_ylim(y - extent, y + extent)

        self.fig.canvas.draw_idle()
        self.fig.canvas.flush_events()

    def close(self) -> None:
        if not self.closed:
            plt.close(self.fig)
            self.closed = True
