"""Shared fixtures and configuration for pytest."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from ergride import DiscoveredDevice
from ergride.protocol import FTMS_SERVICE_UUID, HEART_RATE_SERVICE_UUID
from ergride.recorder import MemoryStore


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeLink:
    """In-memory BleLink that records writes and lets tests push notifications."""

    def __init__(self, device: DiscoveredDevice, services: Sequence[str], on_disconnect) -> None:
        self.device = device
        self.services = set(services)
        self.is_connected = True
        self.handlers = {}
        self.writes: list[tuple[str, bytes]] = []
        self.write_error: Exception | None = None
        self._on_disconnect = on_disconnect

    def has_service(self, service_uuid: str) -> bool:
        return service_uuid in self.services

    async def start_notify(self, char_uuid, handler) -> None:
        self.handlers[char_uuid] = handler

    async def write(self, char_uuid: str, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.writes.append((char_uuid, data))

    async def disconnect(self) -> None:
        self.is_connected = False

    def notify(self, char_uuid: str, data: bytes) -> None:
        self.handlers[char_uuid](data)

    def drop(self) -> None:
        """Simulate the peripheral going out of range."""
        self.is_connected = False
        self._on_disconnect(self)


class FakeTransport:
    """BleTransport with scriptable scan results, known devices and failures."""

    def __init__(self) -> None:
        self.supported = True
        self.scan_results: list[DiscoveredDevice] = []
        self.known: list[DiscoveredDevice] = []
        # address -> services exposed once connected
        self.services: dict[str, list[str]] = {}
        self.fail_connect: set[str] = set()
        self.links: list[FakeLink] = []
        self.requests: list[list[str]] = []
        # held by the next connect call until set
        self.connect_gate: asyncio.Event | None = None

    def is_supported(self) -> bool:
        return self.supported

    async def request_device(self, service_uuids, chooser):
        self.requests.append(list(service_uuids))
        devices = [d for d in self.scan_results if set(d.services) & set(service_uuids)]
        if not devices:
            return None
        return await chooser(devices)

    async def known_devices(self) -> list[DiscoveredDevice]:
        return list(self.known)

    def is_connected(self, device: DiscoveredDevice) -> bool:
        return any(link.device.address == device.address and link.is_connected for link in self.links)

    async def connect(self, device, on_disconnect) -> FakeLink:
        gate, self.connect_gate = self.connect_gate, None
        if gate is not None:
            await gate.wait()
        if device.address in self.fail_connect:
            raise OSError(f"Could not connect to {device.address}")
        link = FakeLink(device, self.services.get(device.address, list(device.services)), on_disconnect)
        self.links.append(link)
        return link

    def links_for(self, address: str) -> list[FakeLink]:
        return [link for link in self.links if link.device.address == address]


@pytest.fixture
def trainer_device():
    return DiscoveredDevice(
        address="AA:BB:CC:DD:EE:01", name="KICKR CORE", services=(FTMS_SERVICE_UUID,), rssi=-50
    )


@pytest.fixture
def hrm_device():
    return DiscoveredDevice(
        address="AA:BB:CC:DD:EE:02", name="HRM-Pro", services=(HEART_RATE_SERVICE_UUID,), rssi=-60
    )


@pytest.fixture
def transport(trainer_device, hrm_device):
    fake = FakeTransport()
    fake.scan_results = [trainer_device, hrm_device]
    return fake


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()
