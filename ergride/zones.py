"""Power and heart-rate training zones.

Power zones follow the seven Coggan bands as a percentage of FTP. Heart-rate
zones are five bands as a percentage of maximum heart rate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# (upper bound in percent, exclusive; zone name)
POWER_ZONES: tuple[tuple[float, str], ...] = (
    (56, "Recovery"),
    (76, "Endurance"),
    (91, "Tempo"),
    (106, "Threshold"),
    (121, "VO2max"),
    (151, "Anaerobic"),
    (math.inf, "Neuromuscular"),
)

HR_ZONES: tuple[tuple[float, str], ...] = (
    (60, "Recovery"),
    (70, "Easy"),
    (80, "Aerobic"),
    (90, "Threshold"),
    (math.inf, "Max"),
)

# Display boundaries (inclusive upper percent) used for charts and summaries.
_POWER_BOUNDARY_PERCENTS = (55, 75, 90, 105, 120, 150, math.inf)
_HR_BOUNDARY_PERCENTS = (60, 70, 80, 90, 100)

NO_ZONE = 0


@dataclass(frozen=True)
class Zone:
    """A classified zone; zone 0 means no reference value was available."""

    zone: int
    name: str


@dataclass(frozen=True)
class ZoneBoundary:
    """Upper boundary of a zone in percent and in absolute units."""

    zone: int
    name: str
    max_percent: float
    max_value: float


_UNCLASSIFIED = Zone(NO_ZONE, "N/A")


def _classify(value: float, reference: float | None, table: tuple[tuple[float, str], ...]) -> Zone:
    if not reference or reference <= 0:
        return _UNCLASSIFIED
    percent = value / reference * 100
    for index, (upper, name) in enumerate(table, 1):
        if percent < upper:
            return Zone(index, name)
    # Unreachable while the last band is unbounded
    return Zone(len(table), table[-1][1])


def get_power_zone(watts: float, ftp: float | None) -> Zone:
    """Classify a power value against FTP."""
    return _classify(watts, ftp, POWER_ZONES)


def get_hr_zone(hr: float, max_hr: float | None) -> Zone:
    """Classify a heart-rate value against maximum heart rate."""
    return _classify(hr, max_hr, HR_ZONES)


def _boundaries(
    reference: float | None,
    percents: tuple[float, ...],
    table: tuple[tuple[float, str], ...],
) -> list[ZoneBoundary]:
    if not reference:
        return []
    return [
        ZoneBoundary(
            zone=index,
            name=name,
            max_percent=percent,
            max_value=percent if math.isinf(percent) else round(reference * percent / 100),
        )
        for index, (percent, (_, name)) in enumerate(zip(percents, table), 1)
    ]


def power_zone_boundaries(ftp: float | None) -> list[ZoneBoundary]:
    """Return the power zone table in watts for an FTP."""
    return _boundaries(ftp, _POWER_BOUNDARY_PERCENTS, POWER_ZONES)


def hr_zone_boundaries(max_hr: float | None) -> list[ZoneBoundary]:
    """Return the heart-rate zone table in bpm for a maximum heart rate."""
    return _boundaries(max_hr, _HR_BOUNDARY_PERCENTS, HR_ZONES)
