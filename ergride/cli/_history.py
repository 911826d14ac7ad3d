"""Ride history commands for the ergride CLI."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from ..recorder import JsonFileStore, RideHistory, fit_filename
from ._ride import write_activity


def _history(args: argparse.Namespace) -> RideHistory:
    return RideHistory(JsonFileStore(Path(args.data_dir).expanduser()))


async def show_history(args: argparse.Namespace) -> None:
    """List saved rides, newest first."""
    history = _history(args)
    if args.clear:
        history.clear()
        print("✓ Ride history cleared")
        return
    entries = history.entries()

    if args.json:
        rows = [
            {
                "id": entry.id,
                "startTime": entry.start_time,
                "duration": entry.duration,
                "avgPower": entry.summary.avg_power if entry.summary else None,
                "distanceKm": entry.summary.distance_km if entry.summary else None,
            }
            for entry in entries
        ]
        print(json.dumps(rows, indent=2))
        return

    if not entries:
        print("No saved rides")
        return
    for entry in entries:
        started = datetime.fromtimestamp(entry.start_time / 1000).strftime("%Y-%m-%d %H:%M")
        minutes = entry.duration // 60000
        line = f"{entry.id}  {started}  {minutes:>3} min"
        if entry.summary:
            line += f"  {entry.summary.avg_power:>4} W  {entry.summary.distance_km:6.2f} km"
        print(line)


async def export_ride(args: argparse.Namespace) -> None:
    """Write the FIT activity data of a saved ride as JSON."""
    entry = _history(args).get(args.ride_id)
    if entry is None:
        print(f"✗ No saved ride with id {args.ride_id}")
        sys.exit(1)
    try:
        output = args.output or fit_filename(entry.start_time, ".json")
        write_activity(Path(output), entry.to_ride(), None)
    except ValueError as e:
        print(f"✗ {e}")
        sys.exit(1)
