"""Discovery commands for the ergride CLI."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .._registry import DeviceRegistry
from .._scanner import find_devices
from ..protocol import FTMS_SERVICE_UUID, HEART_RATE_SERVICE_UUID

LOGGER = logging.getLogger(__name__)


def _kind(services: tuple[str, ...]) -> str:
    kinds = []
    if FTMS_SERVICE_UUID in services:
        kinds.append("trainer")
    if HEART_RATE_SERVICE_UUID in services:
        kinds.append("heart rate")
    return ", ".join(kinds) or "unknown"


async def scan_devices(args: argparse.Namespace) -> None:
    """Scan for trainers and heart-rate sensors in range."""
    print(f"Scanning for trainers and heart-rate sensors (timeout: {args.timeout}s)...")
    try:
        devices = await find_devices(
            [FTMS_SERVICE_UUID, HEART_RATE_SERVICE_UUID], timeout=args.timeout
        )
    except Exception as e:
        print(f"\n✗ Error during scan: {e}")
        LOGGER.error("Scan error", exc_info=True)
        sys.exit(1)

    if not devices:
        print("\n✗ No devices found")
        sys.exit(1)

    print(f"\n✓ Found {len(devices)} device(s):\n")
    for i, device in enumerate(devices, 1):
        print(f"{i}. {device.name or 'Unknown Device'}")
        print(f"   Address: {device.address}")
        print(f"   Type: {_kind(device.services)}")
        if device.rssi is not None:
            print(f"   RSSI: {device.rssi} dBm")
        print()


async def list_devices(args: argparse.Namespace) -> None:
    """List or forget remembered devices."""
    registry = DeviceRegistry(Path(args.data_dir).expanduser() / "devices.json")

    if args.forget:
        if registry.forget(args.forget):
            print(f"✓ Forgot {args.forget}")
        else:
            print(f"✗ Unknown device: {args.forget}")
            sys.exit(1)
        return

    devices = registry.devices()
    if not devices:
        print("No remembered devices. Use 'ergride ride' to pick one.")
        return
    for device in devices:
        print(f"{device.address}  {device.name or 'Unknown Device'}  ({_kind(device.services)})")
