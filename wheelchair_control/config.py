"""Configuration parameters for the wheelchair control system.

This module centralizes all configuration parameters including:
- Physical wheel and encoder parameters
- Sampling and motion smoothing timing
- Serial tick feed and manual key bindings
- Visualization settings
- WebSocket pose stream parameters

All parameters are documented with their purpose, valid ranges, and origin.
"""

import math
from dataclasses import dataclass

# ============================================================================
# Physical Wheel Parameters
# ============================================================================

WHEEL_RADIUS = 0.3
"""Radius of each drive wheel (meters).
Fixed by the wheelchair model. Must be > 0."""

TICKS_PER_REVOLUTION = 30.0
"""Encoder ticks counted for one full wheel revolution.
Matches the encoder disc fitted to the wheelchair. Must be > 0."""


# ============================================================================
# Timing Parameters
# ============================================================================

TIME_SLICE = 0.1
"""Sampling window for converting accumulated ticks into motion (seconds).

Every TIME_SLICE the accumulated tick deltas are converted to wheel distances,
a new trajectory is started and the deltas are reset to zero.
"""

TRAJECTORY_DURATION = 0.2
"""Time over which one motion command is interpolated (seconds).

Deliberately longer than TIME_SLICE: the next command normally arrives while
the previous trajectory is still running and replaces it from the current
intermediate pose.
"""

FRAME_INTERVAL = 1.0 / 60.0
"""Scheduler cadence (seconds per frame).
One tick of the control loop runs per frame."""

DIAGNOSTICS_INTERVAL_FRAMES = 300
"""Frames between debug-level diagnostics lines from the control loop."""


# ============================================================================
# Serial Tick Feed
# ============================================================================

SERIAL_PORT = "COM10"
"""Serial device the encoder board is attached to.
Use e.g. /dev/ttyUSB0 on Linux."""

SERIAL_BAUD_RATE = 9600
"""Baud rate of the encoder board."""

SERIAL_TIMEOUT_SECONDS = 0.05
"""Read timeout for one tick line (seconds).

Bounds how long a frame can wait on the transport. A timeout is not an error,
it just means no new reading arrived this frame.
"""

MAX_RECORD_BYTES = 256
"""Longest partial record held back while waiting for its line break.
Anything longer is line noise and is discarded."""


# ============================================================================
# Manual Input
# ============================================================================

MANUAL_KEY_BINDINGS = {
    "left_forward": "u",
    "left_backward": "j",
    "right_forward": "i",
    "right_backward": "k",
}
"""Keys driving each wheel when no encoder board is connected.
Each held key asserts a +/-1 tick delta on one wheel for the current window."""


# ============================================================================
# Visualization Settings
# ============================================================================

COLOR_ORANGE = "#f74823"
"""Primary trajectory colour."""

COLOR_BLUE = "#2374f7"
"""Secondary colour (start markers, heading)."""

COLOR_CREAM = "#fffdee"
"""Foreground colour for text, spines and grid."""

COLOR_TAUPE = "#686a5f"
"""Muted colour for guides."""

COLOR_DARK_BLUE = "#0d1b2a"
"""Figure and axes background."""

LIVE_TRAIL_LENGTH = 1800
"""Most recent poses kept in the live view trail (30 s at 60 frames/s)."""

# Terminal colours
TERM_ORANGE = "\033[38;2;247;72;35m"
TERM_BLUE = "\033[38;2;35;116;247m"
TERM_RESET = "\033[0m"


# ============================================================================
# WebSocket Pose Stream
# ============================================================================

WS_URI = None
"""WebSocket URI of an external renderer that receives pose updates.
None disables the stream."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""


# ============================================================================
# Validated Parameter Set
# ============================================================================


class ConfigurationError(ValueError):
    """Raised when kinematic parameters cannot produce finite motion."""


def validate_parameters(
    wheel_radius: float,
    ticks_per_revolution: float,
    time_slice: float,
    trajectory_duration: float,
) -> None:
    """Check that every kinematic parameter is finite and strictly positive.

    Args:
        wheel_radius: Wheel radius (meters)
        ticks_per_revolution: Encoder ticks per wheel revolution
        time_slice: Sampling window (seconds)
        trajectory_duration: Interpolation time per command (seconds)

    Raises:
        ConfigurationError: If any parameter is zero, negative, NaN or infinite.
    """
    values = {
        "wheel_radius": wheel_radius,
        "ticks_per_revolution": ticks_per_revolution,
        "time_slice": time_slice,
        "trajectory_duration": trajectory_duration,
    }
    for name, value in values.items():
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
        if not math.isfinite(number) or number <= 0.0:
            raise ConfigurationError(f"{name} must be a finite value > 0, got {value!r}")


@dataclass(frozen=True)
class KinematicParameters:
    """Immutable kinematic configuration, validated on construction.

    Attributes:
        wheel_radius: Wheel radius (meters)
        ticks_per_revolution: Encoder ticks per wheel revolution
        time_slice: Sampling window (seconds)
        trajectory_duration: Interpolation time per motion command (seconds)
    """

    wheel_radius: float = WHEEL_RADIUS
    ticks_per_revolution: float = TICKS_PER_REVOLUTION
    time_slice: float = TIME_SLICE
    trajectory_duration: float = TRAJECTORY_DURATION

    def __post_init__(self):
        validate_parameters(
            self.wheel_radius,
            self.ticks_per_revolution,
            self.time_slice,
            self.trajectory_duration,
        )
