from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from ._history import export_ride, show_history
from ._ride import ride
from ._scan import list_devices, scan_devices
from ..workout import BUILT_IN_WORKOUTS

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.ergride"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the ergride tool."""
    parser = argparse.ArgumentParser(
        prog="ergride",
        description="Smart trainer ride recorder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ergride scan                          # List trainers and heart-rate sensors
  ergride ride --ftp 250 --max-hr 190   # Record a ride with zone statistics
  ergride ride --erg 180                # Hold the trainer at 180 W
  ergride ride --workout vo2max         # Ride the built-in VO2max intervals
  ergride ride --resume                 # Continue a ride interrupted by a crash
  ergride history                       # List saved rides
  ergride export RIDE_ID ride.json      # Write FIT activity data for a ride
        """,
    )
    parser.add_argument(
        "--data-dir",
        default=DEFAULT_DATA_DIR,
        help=f"Directory for rides and remembered devices (default: {DEFAULT_DATA_DIR})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute", required=True)

    scan_parser = subparsers.add_parser("scan", help="Scan for trainers and heart-rate sensors")
    scan_parser.add_argument(
        "--timeout", type=float, default=10.0, help="Scan timeout in seconds (default: 10.0)"
    )
    scan_parser.set_defaults(func=scan_devices)

    devices_parser = subparsers.add_parser("devices", help="List remembered devices")
    devices_parser.add_argument("--forget", metavar="ADDRESS", help="Forget a remembered device")
    devices_parser.set_defaults(func=list_devices)

    ride_parser = subparsers.add_parser("ride", help="Connect and record a ride")
    ride_parser.add_argument("--ftp", type=int, help="Functional threshold power for power zones")
    ride_parser.add_argument("--max-hr", type=int, help="Maximum heart rate for HR zones")
    target_group = ride_parser.add_mutually_exclusive_group()
    target_group.add_argument("--erg", type=int, metavar="WATTS", help="ERG mode target power")
    target_group.add_argument(
        "--workout", choices=sorted(BUILT_IN_WORKOUTS), help="Ride a built-in ERG workout"
    )
    ride_parser.add_argument("--no-hrm", action="store_true", help="Do not connect a heart-rate sensor")
    ride_parser.add_argument(
        "--resume", action="store_true", help="Resume an interrupted ride if one was saved"
    )
    ride_parser.add_argument("--output", help="Write FIT activity data as JSON to this file")
    ride_parser.add_argument(
        "--timeout", type=float, default=10.0, help="Scan timeout in seconds (default: 10.0)"
    )
    ride_parser.add_argument(
        "--interval", type=float, default=5.0, help="Display interval in seconds (default: 5.0)"
    )
    ride_parser.set_defaults(func=ride)

    history_parser = subparsers.add_parser("history", help="List saved rides")
    history_parser.add_argument("--json", action="store_true", help="Output as JSON")
    history_parser.add_argument("--clear", action="store_true", help="Delete all saved rides")
    history_parser.set_defaults(func=show_history)

    export_parser = subparsers.add_parser("export", help="Export FIT activity data of a saved ride")
    export_parser.add_argument("ride_id", help="Ride id from 'ergride history'")
    export_parser.add_argument(
        "output",
        nargs="?",
        help="Output JSON file (default: YYYY-MM-DD_HH-MM_indoor_cycling.json)",
    )
    export_parser.set_defaults(func=export_ride)

    return parser.parse_args(argv)


def main() -> None:
    """Entry point for the ergride CLI."""
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(args.func(args))
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
    except Exception as e:
        LOGGER.error("Error: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
