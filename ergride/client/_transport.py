from __future__ import annotations

import logging
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Protocol

from bleak import BleakClient

from .._registry import DeviceRegistry
from .._scanner import DiscoveredDevice, find_devices

LOGGER = logging.getLogger(__name__)

DeviceChooser = Callable[[Sequence[DiscoveredDevice]], Awaitable[DiscoveredDevice | None]]
NotificationHandler = Callable[[bytes], None]


class BleLink(Protocol):
    """An open connection to one peripheral."""

    @property
    def device(self) -> DiscoveredDevice: ...

    @property
    def is_connected(self) -> bool: ...

    def has_service(self, service_uuid: str) -> bool: ...

    async def start_notify(self, char_uuid: str, handler: NotificationHandler) -> None: ...

    async def write(self, char_uuid: str, data: bytes) -> None: ...

    async def disconnect(self) -> None: ...


LinkLostHandler = Callable[[BleLink], None]


class BleTransport(Protocol):
    """Discovery and connection primitives used by the device manager."""

    def is_supported(self) -> bool: ...

    async def request_device(
        self, service_uuids: Sequence[str], chooser: DeviceChooser
    ) -> DiscoveredDevice | None: ...

    async def known_devices(self) -> list[DiscoveredDevice]: ...

    def is_connected(self, device: DiscoveredDevice) -> bool: ...

    async def connect(self, device: DiscoveredDevice, on_disconnect: LinkLostHandler) -> BleLink: ...


async def choose_first(devices: Sequence[DiscoveredDevice]) -> DiscoveredDevice | None:
    """Chooser that picks the first offered device, or nothing."""
    return devices[0] if devices else None


class BleakLink:
    """BleLink backed by a connected BleakClient."""

    def __init__(self, device: DiscoveredDevice, client: BleakClient) -> None:
        self._device = device
        self._client = client

    @property
    def device(self) -> DiscoveredDevice:
        return self._device

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    def has_service(self, service_uuid: str) -> bool:
        return self._client.services.get_service(service_uuid) is not None

    async def start_notify(self, char_uuid: str, handler: NotificationHandler) -> None:
        await self._client.start_notify(char_uuid, lambda _sender, data: handler(bytes(data)))

    async def write(self, char_uuid: str, data: bytes) -> None:
        await self._client.write_gatt_char(char_uuid, data, response=True)

    async def disconnect(self) -> None:
        if self._client.is_connected:
            await self._client.disconnect()


class BleakTransport:
    """BleTransport implemented with bleak."""

    def __init__(
        self,
        registry: DeviceRegistry | None = None,
        *,
        scan_timeout: float = 10.0,
        connect_timeout: float = 10.0,
    ) -> None:
        self.registry = registry or DeviceRegistry()
        self.scan_timeout = scan_timeout
        self.connect_timeout = connect_timeout
        self._links: dict[str, BleakLink] = {}

    def is_supported(self) -> bool:
        """Return whether this host has a Bluetooth adapter bleak can drive."""
        if sys.platform == "linux":
            return any(Path("/sys/class/bluetooth").glob("hci*"))
        return sys.platform in ("darwin", "win32")

    async def request_device(
        self, service_uuids: Sequence[str], chooser: DeviceChooser
    ) -> DiscoveredDevice | None:
        """Scan for matching devices and let the chooser pick one."""
        LOGGER.info("Scanning for devices advertising %s", ", ".join(service_uuids))
        devices = await find_devices(service_uuids, timeout=self.scan_timeout)
        if not devices:
            LOGGER.info("No matching devices found")
            return None
        device = await chooser(devices)
        if device is not None:
            self.registry.remember(device)
        return device

    async def known_devices(self) -> list[DiscoveredDevice]:
        return self.registry.devices()

    def is_connected(self, device: DiscoveredDevice) -> bool:
        link = self._links.get(device.address)
        return link is not None and link.is_connected

    async def connect(self, device: DiscoveredDevice, on_disconnect: LinkLostHandler) -> BleLink:
        """Connect to a device; on_disconnect fires with the link when it drops."""

        def _disconnected(_client: BleakClient) -> None:
            if self._links.get(device.address) is link:
                del self._links[device.address]
            on_disconnect(link)

        client = BleakClient(
            device.address,
            disconnected_callback=_disconnected,
            timeout=self.connect_timeout,
        )
        link = BleakLink(device, client)
        await client.connect()
        self._links[device.address] = link
        LOGGER.debug("Connected to %s (%s)", device.display_name, device.address)
        return link
