"""Bluetooth LE device manager for FTMS trainers and heart-rate sensors."""

from ._client import (
    AutoConnectResult,
    ConnectionConfig,
    ConnectionStatus,
    DeviceCallbacks,
    DeviceInfo,
    DeviceManager,
)
from ._transport import BleakLink, BleakTransport, BleLink, BleTransport, DeviceChooser, choose_first

__all__ = [
    "AutoConnectResult",
    "BleLink",
    "BleTransport",
    "BleakLink",
    "BleakTransport",
    "ConnectionConfig",
    "ConnectionStatus",
    "DeviceCallbacks",
    "DeviceChooser",
    "DeviceInfo",
    "DeviceManager",
    "choose_first",
]
