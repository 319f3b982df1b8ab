"""
Main entry point when running the wheelchair_control module with python -m.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .config import (
    FRAME_INTERVAL,
    SERIAL_BAUD_RATE,
    SERIAL_PORT,
    SERIAL_TIMEOUT_SECONDS,
    TICKS_PER_REVOLUTION,
    TIME_SLICE,
    TRAJECTORY_DURATION,
    WHEEL_RADIUS,
    WS_URI,
    ConfigurationError,
    KinematicParameters,
)
from .controller import WheelchairController, setup_logging
from .data_collector import DataCollector
from .input_source import KeyboardState, open_serial_transport, select_input_source


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Encoder-driven wheelchair controller with smoothed pose output"
    )
    parser.add_argument("--wheel-radius", type=float, default=WHEEL_RADIUS,
                        help=f"Wheel radius in meters (default: {WHEEL_RADIUS})")
    parser.add_argument("--ticks-per-rev", type=float, default=TICKS_PER_REVOLUTION,
                        help=f"Encoder ticks per revolution (default: {TICKS_PER_REVOLUTION:g})")
    parser.add_argument("--time-slice", type=float, default=TIME_SLICE,
                        help=f"Sampling window in seconds (default: {TIME_SLICE})")
    parser.add_argument("--duration", type=float, default=TRAJECTORY_DURATION,
                        help=f"Smoothing time per command in seconds (default: {TRAJECTORY_DURATION})")
    parser.add_argument("--port", default=SERIAL_PORT,
                        help=f"Serial port of the encoder board (default: {SERIAL_PORT})")
    parser.add_argument("--baud", type=int, default=SERIAL_BAUD_RATE,
                        help=f"Serial baud rate (default: {SERIAL_BAUD_RATE})")
    parser.add_argument("--manual", action="store_true",
                        help="Skip the serial probe and drive with the keyboard")
    parser.add_argument("--ws-uri", default=WS_URI,
                        help="Stream poses to this WebSocket server (ws:// or wss://)")
    parser.add_argument("--record", action="store_true",
                        help="Record commands and poses under results/")
    parser.add_argument("--live", action="store_true",
                        help="Open a live view (required for keyboard driving)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging with timestamps")
    return parser


async def run(controller: WheelchairController) -> None:
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logging.info("\nShutdown signal received...")
        controller.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    await controller.run_control_loop()


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        params = KinematicParameters(
            wheel_radius=args.wheel_radius,
            ticks_per_revolution=args.ticks_per_rev,
            time_slice=args.time_slice,
            trajectory_duration=args.duration,
        )
    except ConfigurationError as e:
        logging.error(f"Invalid configuration: {e}")
        return 1

    transport = None
    if not args.manual:
        transport = open_serial_transport(args.port, args.baud, SERIAL_TIMEOUT_SECONDS)

    keyboard = KeyboardState()
    input_source = select_input_source(transport, keyboard)
    if transport is None:
        logging.info("No encoder board connected, using keyboard input (U/J left, I/K right)")
        if not args.live:
            logging.warning("Keyboard input needs the live view, add --live to drive")

    data_collector = None
    if args.record:
        data_collector = DataCollector()

    try:
        controller = WheelchairController(
            params,
            input_source,
            data_collector=data_collector,
            uri=args.ws_uri,
            frame_interval=FRAME_INTERVAL,
        )
    except ValueError as e:
        input_source.close()
        logging.error(f"{e}")
        return 1

    view = None
    if args.live:
        from .live_plot import LivePoseView

        view = LivePoseView(keyboard=keyboard, on_close=controller.stop)
        controller.sinks.append(view)

    with controller:
        try:
            asyncio.run(run(controller))
        except KeyboardInterrupt:
            logging.info("\nExiting...")

    if view is not None:
        view.close()
    if data_collector is not None:
        logging.info(f"Run recorded to {data_collector.run_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
