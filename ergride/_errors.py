from __future__ import annotations


class ErgRideError(Exception):
    """Base class for ergride errors."""


class UnsupportedError(ErgRideError):
    """Raised when the platform has no usable Bluetooth LE support."""


class UserCancelledError(ErgRideError):
    """Raised when no device was chosen."""


class ServiceNotFoundError(ErgRideError):
    """Raised when a connected device does not expose the expected GATT service."""

    def __init__(self, service_uuid: str, device_name: str | None = None) -> None:
        self.service_uuid = service_uuid
        self.device_name = device_name
        super().__init__(f"Device {device_name or 'unknown'} does not expose service {service_uuid}")


class StorageFullError(ErgRideError):
    """Raised by a key-value store when persistent storage is exhausted."""
