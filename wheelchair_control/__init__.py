"""Wheelchair Control System - Encoder Dead Reckoning with Smoothed Motion

Turns wheel-encoder tick counts (or, without hardware, held keys) into smooth
motion of a two-wheeled differential-drive wheelchair. The system is
open-loop: no feedback, no planning, only dead reckoning plus smoothing.

## Pipeline

### Input (input_source.py)
One of two feeds, chosen once at start-up:
- HardwareFeed: "Left : <int> , Right: <int>" lines from the encoder board over serial
- ManualFeed: U/J (left wheel) and I/K (right wheel) keys, +/-1 tick each

### Tick Accumulation and Sampling (encoder.py)
- Absolute readings are differenced into per-window tick deltas
- Every time slice (100 ms) the deltas become wheel distances and are reset

### Kinematics (model.py)
- distance = 2 * pi * r * ticks / ticks_per_revolution
- Both wheels: forward = (d_l + d_r) / 2, yaw = (d_r - d_l) / 2r
- One wheel: pivot of -d_l / r or +d_r / r with half-distance forward creep

### Motion Smoothing (trajectory.py)
- Each command is interpolated over 200 ms (lerp position, slerp rotation)
- A new command replaces the running trajectory from the current pose

## Modules

- `config.py` - Centralized configuration parameters with documentation
- `geometry.py` - Pose, quaternion and interpolation helpers
- `controller.py` - Frame loop, logging setup and WebSocket pose stream
- `data_collector.py` - CSV recording of commands and poses
- `live_plot.py` - Live top-down view (also the keyboard device)
- `visualization.py` / `plot_results.py` - Post-run plots

## Quick Start

```bash
# Drive with the keyboard in a live window
python -m wheelchair_control --manual --live

# Read the encoder board and record the run
python -m wheelchair_control --port /dev/ttyUSB0 --record
```
"""

__version__ = "0.1.0"

from .config import ConfigurationError, KinematicParameters
from .controller import WheelchairController
from .encoder import Impulse, SamplingGate, TickAccumulator
from .geometry import Pose
from .input_source import HardwareFeed, KeyboardState, ManualFeed, parse_tick_record
from .model import MotionCommand, MotionOffset, TurningRegime, compute_motion_offset
from .trajectory import TrajectoryGenerator, TrajectoryState

__all__ = [
    "ConfigurationError",
    "KinematicParameters",
    "WheelchairController",
    "Impulse",
    "SamplingGate",
    "TickAccumulator",
    "Pose",
    "HardwareFeed",
    "KeyboardState",
    "ManualFeed",
    "parse_tick_record",
    "MotionCommand",
    "MotionOffset",
    "TurningRegime",
    "compute_motion_offset",
    "TrajectoryGenerator",
    "TrajectoryState",
]
