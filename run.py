#!/usr/bin/env python3
"""
winsync - shared window registry demo.
Runs one context against a shared directory and drives its frame loop.

Start several of these in separate terminals with the same --store-dir;
each one sees the others join, move and leave.

Usage:
    python run.py                               # One window at (100, 100) 400x300
    python run.py --x 600 --drift 40            # Window that slowly circles around x=600
    python run.py --meta '{"tag": "B"}'         # Custom metadata
    python run.py --reset                       # Tell every running window to reset
"""
import sys
import json
import math
import time
import argparse
import signal

from winsync.core.logger import init_logger, get_logger
from winsync.core.config import Config
from winsync.world.descriptor import Shape
from winsync.world.medium import FileMedium
from winsync.world.window_manager import WindowManager


def parse_args():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="winsync - shared window registry demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                          # Static window
  python run.py --drift 40               # Moving window
  python run.py --duration 10            # Leave after 10 seconds
  python run.py --reset                  # Global reset, then exit
        """
    )

    parser.add_argument("--store-dir", type=str, default=Config.STORE_DIR,
                        help=f"Directory shared by all windows (default: {Config.STORE_DIR})")
    parser.add_argument("--x", type=float, default=100.0, help="Window left edge (default: 100)")
    parser.add_argument("--y", type=float, default=100.0, help="Window top edge (default: 100)")
    parser.add_argument("--width", type=float, default=400.0, help="Window width (default: 400)")
    parser.add_argument("--height", type=float, default=300.0, help="Window height (default: 300)")
    parser.add_argument("--drift", type=float, default=0.0,
                        help="Radius in pixels of a slow circular drift (default: 0, static)")
    parser.add_argument("--meta", type=str, default='{"foo": "bar"}',
                        help="Window metadata as JSON (default: {\"foo\": \"bar\"})")
    parser.add_argument("--duration", type=float, default=0.0,
                        help="Seconds to run before departing (default: 0, until Ctrl+C)")
    parser.add_argument("--reset", action="store_true",
                        help="Broadcast a global reset to every window and exit")
    parser.add_argument("--log-level", type=str, default=Config.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help=f"Logging level (default: {Config.LOG_LEVEL})")
    parser.add_argument("--quiet", action="store_true", help="Hide per-tick heartbeat logging")

    return parser.parse_args()


def drifting_shape(args, started: float):
    """Build a shape provider that circles around the configured rect."""
    def provider() -> Shape:
        if args.drift <= 0:
            return Shape(args.x, args.y, args.width, args.height)
        phase = (time.time() - started) * 0.5
        return Shape(
            round(args.x + math.cos(phase) * args.drift),
            round(args.y + math.sin(phase) * args.drift),
            args.width,
            args.height,
        )
    return provider


def describe(windows) -> str:
    parts = []
    for i, w in enumerate(windows):
        cx, cy = w.shape.center()
        parts.append(f"#{i} {w.id[:8]} @({cx:.0f},{cy:.0f})")
    return ", ".join(parts) or "(none)"


def main():
    """Main entry point"""
    args = parse_args()

    init_logger(args.log_level, quiet_mode=args.quiet)
    logger = get_logger()

    try:
        meta = json.loads(args.meta)
    except ValueError as e:
        logger.error(f"Invalid --meta JSON: {e}")
        return 1

    medium = FileMedium(args.store_dir)
    manager = WindowManager(medium, drifting_shape(args, time.time()))

    if args.reset:
        manager.reset_all()
        logger.info(f"Reset broadcast to {args.store_dir}")
        return 0

    state = {"reset": False}

    def on_windows(windows):
        logger.info(f"[DEMO] windows={len(windows)}: {describe(windows)}")

    def on_shape(shape):
        logger.debug(f"[DEMO] own shape {shape.to_dict()}")

    def on_reset():
        state["reset"] = True

    manager.set_win_change_callback(on_windows)
    manager.set_win_shape_change_callback(on_shape)
    manager.set_reset_callback(on_reset)

    print("\n" + "=" * 60)
    print("  winsync - shared window registry")
    print("=" * 60)
    print(f"  Store Dir: {args.store_dir}")
    print(f"  Shape: x={args.x} y={args.y} w={args.width} h={args.height} drift={args.drift}")
    print(f"  Heartbeat: {Config.HEARTBEAT_INTERVAL_SEC}s  Stale After: {Config.STALE_AFTER_SEC}s"
          f" ({Config.get_liveness_ratio():.1f}x)")
    print(f"  Log Level: {args.log_level}")
    print("=" * 60 + "\n")

    if args.quiet:
        logger.info("Running in quiet mode (heartbeat and poll logging hidden)")

    def on_terminate(signum, frame):
        raise SystemExit(0)

    # Turn SIGTERM into a normal exit so the departure below still runs
    signal.signal(signal.SIGTERM, on_terminate)

    manager.init(meta)
    started = time.time()

    try:
        while True:
            manager.update()
            if state["reset"]:
                # A browser window would reload here; start over with a new id
                logger.info("[DEMO] global reset received, re-registering")
                state["reset"] = False
                manager = WindowManager(medium, drifting_shape(args, time.time()))
                manager.set_win_change_callback(on_windows)
                manager.set_win_shape_change_callback(on_shape)
                manager.set_reset_callback(on_reset)
                manager.init(meta)
            if args.duration and time.time() - started >= args.duration:
                break
            time.sleep(Config.FRAME_INTERVAL_SEC)
    except KeyboardInterrupt:
        logger.info("\nShutdown requested by user")
    finally:
        manager.depart()

    return 0


if __name__ == "__main__":
    sys.exit(main())
