from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from bleak import BleakScanner


@dataclass(frozen=True)
class DiscoveredDevice:
    """Metadata for a Bluetooth LE peripheral."""

    address: str
    name: str | None
    services: tuple[str, ...] = ()
    rssi: int | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.address


def _normalize_uuids(uuids: Iterable[str]) -> set[str]:
    return {uuid.lower() for uuid in uuids}


async def find_devices(service_uuids: Iterable[str], timeout: float = 10.0) -> list[DiscoveredDevice]:
    """Scan for devices advertising any of the given services, strongest signal first."""
    wanted = _normalize_uuids(service_uuids)
    found: list[DiscoveredDevice] = []

    devices = await BleakScanner.discover(timeout=timeout, return_adv=True, service_uuids=list(wanted))
    for device, adv_data in devices.values():
        # Some backends ignore the scan filter, so check the advertisement as well.
        advertised = _normalize_uuids(adv_data.service_uuids or [])
        if not advertised & wanted:
            continue
        found.append(
            DiscoveredDevice(
                address=device.address,
                name=device.name or adv_data.local_name,
                services=tuple(sorted(advertised)),
                rssi=adv_data.rssi,
            )
        )

    found.sort(key=lambda d: d.rssi if d.rssi is not None else -999, reverse=True)
    return found
