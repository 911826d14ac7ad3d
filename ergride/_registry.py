from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from ._scanner import DiscoveredDevice

LOGGER = logging.getLogger(__name__)


class KnownDevice(BaseModel):
    """A peripheral the user has chosen before."""

    address: str
    name: str | None = None
    services: list[str] = Field(default_factory=list)

    def to_device(self) -> DiscoveredDevice:
        return DiscoveredDevice(address=self.address, name=self.name, services=tuple(self.services))


class DeviceRegistry:
    """Previously authorized devices, persisted as a JSON list.

    Devices picked in a chooser are remembered here so later sessions can
    reconnect to them without prompting.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._devices: dict[str, KnownDevice] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            for item in raw:
                device = KnownDevice.model_validate(item)
                self._devices[device.address] = device
        except (OSError, ValueError, TypeError, ValidationError) as e:
            LOGGER.warning("Ignoring unreadable device registry %s: %s", self.path, e)
            self._devices = {}

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [device.model_dump() for device in self._devices.values()]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def devices(self) -> list[DiscoveredDevice]:
        """Return the known devices in the order they were first remembered."""
        return [device.to_device() for device in self._devices.values()]

    def remember(self, device: DiscoveredDevice) -> None:
        """Add or refresh a device."""
        self._devices[device.address] = KnownDevice(
            address=device.address,
            name=device.name,
            services=list(device.services),
        )
        self._save()
        LOGGER.debug("Remembered device %s (%s)", device.display_name, device.address)

    def forget(self, address: str) -> bool:
        """Remove a device; returns False if it was unknown."""
        if self._devices.pop(address, None) is None:
            return False
        self._save()
        return True
