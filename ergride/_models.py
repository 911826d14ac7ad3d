from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """Peripheral role handled by the device manager."""

    TRAINER = "trainer"
    HRM = "hrm"


class ConnectionState(str, Enum):
    """Connection state of one peripheral role."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class TelemetrySample:
    """Trainer telemetry from one notification; absent fields are None."""

    timestamp: int
    power: int | None = None
    cadence: float | None = None
    speed: float | None = None  # km/h
    distance: float | None = None  # meters
    resistance: int | None = None


@dataclass(frozen=True)
class HeartRateSample:
    """Heart-rate measurement with zero or more RR intervals in milliseconds."""

    timestamp: int
    hr: int
    rr_intervals: tuple[int, ...] = field(default_factory=tuple)
