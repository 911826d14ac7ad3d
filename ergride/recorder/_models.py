from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecorderState(str, Enum):
    """Lifecycle state of the ride recorder."""

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class LiveReading:
    """Latest known live values, sampled once per tick."""

    timestamp: int | None = None
    power: int | None = None
    cadence: float | None = None
    speed: float | None = None  # km/h
    distance: float | None = None  # meters, as reported by the trainer
    hr: int | None = None


@dataclass(frozen=True)
class DataPoint:
    """One recorded sample. elapsed excludes paused time."""

    timestamp: int
    elapsed: int  # ms
    power: int = 0
    cadence: int = 0
    speed: float = 0.0  # km/h
    hr: int = 0
    distance: float = 0.0  # meters


@dataclass(frozen=True)
class RRInterval:
    """RR interval in milliseconds tagged with the notification time."""

    timestamp: int
    rr: int


@dataclass(frozen=True)
class RideSummary:
    avg_power: int
    max_power: int
    avg_cadence: int
    avg_hr: int
    max_hr: int
    distance_km: float
    time_in_power_zones: dict[int, int] | None = None  # zone -> ms
    time_in_hr_zones: dict[int, int] | None = None


@dataclass(frozen=True)
class RideData:
    """A finalized ride."""

    start_time: int
    duration: int  # ms, elapsed of the last point
    data_points: list[DataPoint] = field(default_factory=list)
    rr_intervals: list[RRInterval] = field(default_factory=list)
    summary: RideSummary | None = None


class RiderProfile(BaseModel):
    """Reference values for zone classification. Never modified by the recorder."""

    model_config = ConfigDict(frozen=True)

    ftp: int | None = Field(default=None, ge=0)
    max_hr: int | None = Field(default=None, ge=0)


class RecorderConfig(BaseModel):
    """Sampling and persistence settings for a ride."""

    sample_interval: float = Field(default=1.0, gt=0.0)
    snapshot_every: int = Field(default=10, ge=1)
    snapshot_max_points: int = Field(default=600, ge=0)
    snapshot_max_rr: int = Field(default=20000, ge=0)
    history_limit: int = Field(default=30, ge=1)


class RecoverySnapshot(BaseModel):
    """Persisted ride state used to resume after an unplanned restart."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_time: int
    pause_start_time: int | None = None
    total_paused_duration: int = 0
    is_paused: bool = False
    data_points: list[DataPoint] = Field(default_factory=list)
    rr_intervals: list[RRInterval] = Field(default_factory=list)
