#!/usr/bin/env python3
"""
Wheelchair control loop.

This module ties the pipeline together and runs it at a fixed frame rate:

    input source -> tick accumulator -> sampling gate -> kinematics
        -> trajectory generator -> pose sinks

Each frame polls the active input source, closes the sampling window when a
time slice has elapsed, starts a new trajectory for the window's motion and
advances the trajectory by the frame time. Poses can optionally be streamed
to an external renderer over WebSocket.
"""

import asyncio
import json
import logging
import math
import time
from typing import Any, List, Optional, Protocol

import websockets

from .config import (
    DIAGNOSTICS_INTERVAL_FRAMES,
    FRAME_INTERVAL,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    KinematicParameters,
)
from .encoder import SamplingGate, TickAccumulator
from .geometry import Pose
from .input_source import InputSource
from .model import MotionCommand, MotionOffset, compute_motion_offset
from .trajectory import TrajectoryGenerator


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class PoseSink(Protocol):
    def update(self, pose: Pose, timestamp: float) -> None: ...


class WheelchairController:
    """Dead-reckoning control core for a differential-drive wheelchair.

    Attributes:
        params: Validated kinematic parameters.
        input_source: Active tick source (hardware or manual).
        accumulator: Per-window tick deltas.
        gate: Time-slice sampler producing motion commands.
        generator: Trajectory generator owning the current pose.
        sinks: Objects notified with the pose after every frame.
        data_collector: Optional CSV recorder for motion commands and poses.
        clock: Seconds of scheduler time elapsed since start.
        uri: Optional WebSocket URI for streaming poses.
        should_stop: Flag indicating whether to stop the run loop.
    """

    def __init__(
        self,
        params: KinematicParameters,
        input_source: InputSource,
        initial_pose: Optional[Pose] = None,
        sinks: Optional[List[PoseSink]] = None,
        data_collector: Any = None,
        uri: Optional[str] = None,
        frame_interval: float = FRAME_INTERVAL,
    ) -> None:
        """Initialize the controller.

        Args:
            params: Kinematic parameters (validated on construction).
            input_source: Tick source selected by the connectivity probe.
            initial_pose: Starting pose (default: origin, facing +x).
            sinks: Pose sinks updated every frame.
            data_collector: Optional DataCollector recording the run.
            uri: WebSocket URI for the pose stream (ws:// or wss://), or None.
            frame_interval: Target seconds per frame for the run loop.

        Raises:
            ValueError: If URI format or frame interval is invalid.
        """
        if uri is not None and not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")
        if frame_interval <= 0:
            raise ValueError(f"Frame interval must be > 0, got {frame_interval}")

        self.params = params
        self.input_source = input_source
        self.accumulator = TickAccumulator()
        self.gate = SamplingGate(self.accumulator, params)
        self.generator = TrajectoryGenerator(initial_pose, duration=params.trajectory_duration)
        self.sinks: List[PoseSink] = list(sinks or [])
        self.data_collector = data_collector
        self.uri = uri
        self.frame_interval = frame_interval

        self.clock: float = 0.0
        self.frame_count: int = 0
        self.command_count: int = 0
        self.last_command: Optional[MotionCommand] = None
        self.last_offset: Optional[MotionOffset] = None
        self.should_stop: bool = False
        self._pose_updated: Optional[asyncio.Event] = None

    @property
    def pose(self) -> Pose:
        return self.generator.pose

    def tick(self, delta_time: float) -> Pose:
        """Run one frame of the control loop.

        Args:
            delta_time: Real time since the previous frame (seconds).

        Returns:
            Vehicle pose after this frame.
        """
        if delta_time < 0:
            raise ValueError(f"delta_time must be >= 0, got {delta_time}")

        self.clock += delta_time
        self.frame_count += 1

        self.input_source.poll(self.accumulator)

        command = self.gate.poll(self.clock)
        if command is not None:
            offset = compute_motion_offset(command, self.params.wheel_radius)
            self.generator.start(offset)
            self.command_count += 1
            self.last_command = command
            self.last_offset = offset
            if self.data_collector is not None:
                self.data_collector.log_command(self.clock, command, offset)

        pose = self.generator.advance(delta_time)

        for sink in self.sinks:
            sink.update(pose, self.clock)
        if self.data_collector is not None:
            self.data_collector.log_pose(self.clock, pose, self.generator.state.value)

        return pose

    async def send_pose(self, websocket: Any, pose: Pose, log: bool = False) -> None:
        """Send the current pose to the WebSocket server.

        Args:
            websocket: Active WebSocket connection.
            pose: Pose to publish.
            log: Whether to log the message (default: False for quiet operation).
        """
        message = {"message_type": "pose", "timestamp": self.clock, **pose.to_dict()}
        await websocket.send(json.dumps(message))
        if log:
            logging.debug(f"Sent pose: {message}")

    async def run_frames(self) -> None:
        """Call tick() at a fixed cadence until stopped."""
        last_time = time.monotonic()
        while not self.should_stop:
            frame_start = time.monotonic()
            delta_time = frame_start - last_time
            last_time = frame_start

            self.tick(delta_time)
            if self._pose_updated is not None:
                self._pose_updated.set()
            if self.frame_count % DIAGNOSTICS_INTERVAL_FRAMES == 0:
                self.log_diagnostics(logging.DEBUG)

            remaining = self.frame_interval - (time.monotonic() - frame_start)
            await asyncio.sleep(max(0.0, remaining))

        self.log_diagnostics(logging.INFO)
        if self._pose_updated is not None:
            self._pose_updated.set()

    async def stream_poses(self) -> None:
        """Publish each new pose over WebSocket.

        Maintains the connection with automatic retry and exponential backoff.
        Connection problems never interrupt the control loop.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS
        max_retry_delay = WS_MAX_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to pose server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        await self._pose_updated.wait()
                        self._pose_updated.clear()
                        if self.should_stop:
                            break
                        await self.send_pose(websocket, self.pose)

            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by pose server")
            except OSError as e:
                logging.error(f"Connection error: {e}")

            if self.should_stop:
                break
            logging.info(f"Retrying in {retry_delay} seconds...")
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, max_retry_delay)

    async def run_control_loop(self) -> None:
        """Run the frame loop, plus the pose stream when a URI is configured."""
        logging.info(
            f"{TERM_BLUE}✓ Running with {self.input_source.name} input "
            f"(r={self.params.wheel_radius}m, {self.params.ticks_per_revolution:g} ticks/rev, "
            f"slice={self.params.time_slice}s){TERM_RESET}"
        )
        if self.uri is None:
            await self.run_frames()
            return

        self._pose_updated = asyncio.Event()
        await asyncio.gather(self.run_frames(), self.stream_poses())

    def stop(self) -> None:
        """Signal the controller to stop."""
        self.should_stop = True
        if self._pose_updated is not None:
            self._pose_updated.set()

    def get_diagnostics(self) -> dict:
        """Counters and trajectory state for logging."""
        return {
            "clock": self.clock,
            "frames": self.frame_count,
            "commands": self.command_count,
            **self.generator.get_diagnostics(),
        }

    def log_diagnostics(self, level: int = logging.DEBUG) -> None:
        d = self.get_diagnostics()
        logging.log(
            level,
            f"t={d['clock']:.2f}s frames={d['frames']} commands={d['commands']} "
            f"state={d['state']} superseded={d['superseded_count']} "
            f"yaw={math.degrees(d['yaw']):+.1f}°",
        )

    def __enter__(self) -> "WheelchairController":
        if self.data_collector is not None:
            self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.input_source.close()
        if self.data_collector is not None:
            self.data_collector.cleanup()
