"""ergride.

Connects to Bluetooth FTMS smart trainers and heart-rate sensors, decodes
their telemetry, sends ERG power targets, and records rides that survive a
restart.
"""

from ._errors import (
    ErgRideError,
    ServiceNotFoundError,
    StorageFullError,
    UnsupportedError,
    UserCancelledError,
)
from ._models import ConnectionState, HeartRateSample, Role, TelemetrySample
from ._registry import DeviceRegistry
from ._scanner import DiscoveredDevice, find_devices
from .client import (
    BleakTransport,
    ConnectionConfig,
    DeviceCallbacks,
    DeviceManager,
)
from .recorder import (
    DataPoint,
    JsonFileStore,
    LiveMetrics,
    MemoryStore,
    RecorderConfig,
    RideData,
    RideHistory,
    RideRecorder,
    RideSampler,
    RiderProfile,
    build_fit_activity,
)

__version__ = "0.1.0b1"

__all__ = [
    "BleakTransport",
    "ConnectionConfig",
    "ConnectionState",
    "DataPoint",
    "DeviceCallbacks",
    "DeviceManager",
    "DeviceRegistry",
    "DiscoveredDevice",
    "ErgRideError",
    "HeartRateSample",
    "JsonFileStore",
    "LiveMetrics",
    "MemoryStore",
    "RecorderConfig",
    "RideData",
    "RideHistory",
    "RideRecorder",
    "RideSampler",
    "RiderProfile",
    "Role",
    "ServiceNotFoundError",
    "StorageFullError",
    "TelemetrySample",
    "UnsupportedError",
    "UserCancelledError",
    "build_fit_activity",
    "find_devices",
]
