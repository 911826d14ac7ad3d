"""Activity data handed to an external FIT encoder.

The encoder owns the binary format and checksums; this module only
gathers what it needs from a finished ride, in FIT units (seconds,
meters, meters per second).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ._models import RideData, RideSummary, RiderProfile


@dataclass(frozen=True)
class FitRecord:
    timestamp: int  # ms since epoch
    power: int
    cadence: int | None
    speed: float | None  # m/s
    distance: float | None  # m
    heart_rate: int | None


@dataclass(frozen=True)
class FitHrv:
    timestamp: int
    times: tuple[int, ...]  # RR intervals in ms


@dataclass(frozen=True)
class FitActivity:
    start_time: int  # ms since epoch
    total_elapsed_time: int  # s
    end_time: int
    summary: RideSummary | None
    threshold_power: int | None = None
    records: list[FitRecord] = field(default_factory=list)
    hrv: list[FitHrv] = field(default_factory=list)


def build_fit_activity(ride: RideData | None, profile: RiderProfile | None = None) -> FitActivity:
    """Collect the session, record and HRV data of a ride for FIT encoding."""
    if ride is None or not ride.data_points:
        raise ValueError("No ride data to export")

    records = [
        FitRecord(
            timestamp=point.timestamp,
            power=point.power,
            cadence=point.cadence or None,
            speed=point.speed / 3.6 if point.speed else None,
            distance=point.distance or None,
            heart_rate=point.hr if point.hr > 0 else None,
        )
        for point in ride.data_points
    ]

    grouped: dict[int, list[int]] = {}
    for interval in ride.rr_intervals:
        grouped.setdefault(interval.timestamp, []).append(round(interval.rr))

    return FitActivity(
        start_time=ride.start_time,
        total_elapsed_time=round(ride.duration / 1000),
        end_time=ride.start_time + ride.duration,
        summary=ride.summary,
        threshold_power=profile.ftp if profile and profile.ftp else None,
        records=records,
        hrv=[FitHrv(timestamp, tuple(times)) for timestamp, times in grouped.items()],
    )


def fit_filename(start_time: int, suffix: str = ".fit") -> str:
    """Name an activity file after its local start time, e.g. 2024-03-01_18-30_indoor_cycling.fit."""
    started = datetime.fromtimestamp(start_time / 1000)
    return f"{started:%Y-%m-%d_%H-%M}_indoor_cycling{suffix}"
