from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import TypeVar

from pydantic import ValidationError

from .._errors import StorageFullError
from .._models import HeartRateSample
from .._time import now_ms
from ..zones import get_hr_zone, get_power_zone
from ._models import (
    DataPoint,
    LiveReading,
    RecorderConfig,
    RecorderState,
    RecoverySnapshot,
    RideData,
    RideSummary,
    RiderProfile,
    RRInterval,
)
from ._storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

RIDE_IN_PROGRESS_KEY = "ride_in_progress"

POWER_ZONE_COUNT = 7
HR_ZONE_COUNT = 5

_T = TypeVar("_T")


def _tail(items: Sequence[_T], count: int) -> list[_T]:
    return list(items[-count:]) if count > 0 else []


class RideRecorder:
    """Recording state machine and sample buffer for a single ride.

    One recorder is created by whatever orchestrates a ride and passed to
    the sampler and device callbacks. It moves through idle -> recording
    <-> paused -> stopped, and writes a bounded recovery snapshot to the
    store so a ride can be resumed with recover_ride() after a crash.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: RecorderConfig | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._config = config or RecorderConfig()
        self._clock = clock
        self.is_recording = False
        self.is_paused = False
        self.start_time: int | None = None
        self.pause_start_time: int | None = None
        self.total_paused_duration = 0
        self.last_distance = 0.0
        self._data_points: list[DataPoint] = []
        self._rr_intervals: list[RRInterval] = []
        self._stopped = False

    @property
    def state(self) -> RecorderState:
        if self.is_recording:
            return RecorderState.PAUSED if self.is_paused else RecorderState.RECORDING
        return RecorderState.STOPPED if self._stopped else RecorderState.IDLE

    @property
    def data_points(self) -> Sequence[DataPoint]:
        return tuple(self._data_points)

    @property
    def rr_intervals(self) -> Sequence[RRInterval]:
        return tuple(self._rr_intervals)

    def start_recording(self) -> None:
        """Start a new ride, discarding any previous buffers."""
        if self.is_recording:
            LOGGER.warning("Recording already in progress")
            return
        self.is_recording = True
        self.is_paused = False
        self._stopped = False
        self.start_time = self._clock()
        self.pause_start_time = None
        self.total_paused_duration = 0
        self.last_distance = 0.0
        self._data_points = []
        self._rr_intervals = []
        LOGGER.info("Recording started")
        self._persist()

    def pause_recording(self) -> None:
        if not self.is_recording or self.is_paused:
            return
        self.is_paused = True
        self.pause_start_time = self._clock()
        LOGGER.info("Recording paused")
        self._persist()

    def resume_recording(self) -> None:
        if not self.is_recording or not self.is_paused:
            return
        if self.pause_start_time is not None:
            self.total_paused_duration += max(0, self._clock() - self.pause_start_time)
        self.is_paused = False
        self.pause_start_time = None
        LOGGER.info("Recording resumed")
        self._persist()

    def stop_recording(self, profile: RiderProfile | None = None) -> RideData | None:
        """Finish the ride, drop the recovery snapshot and return the ride record."""
        if self.is_recording:
            self._stopped = True
        self.is_recording = False
        self.is_paused = False
        try:
            self._store.delete(RIDE_IN_PROGRESS_KEY)
        except OSError as e:
            LOGGER.error("Could not remove recovery snapshot: %s", e)
        LOGGER.info("Recording stopped with %d points", len(self._data_points))
        return self.get_ride_data(profile)

    def add_data_point(self, reading: LiveReading) -> None:
        """Append a sample while recording and not paused.

        Device distance is used when it exceeds the last known distance;
        otherwise distance is extrapolated from speed over the elapsed time
        since the previous sample. Both keep distance non-decreasing.
        """
        if not self.is_recording or self.is_paused or self.start_time is None:
            return

        now = reading.timestamp if reading.timestamp is not None else self._clock()
        elapsed = max(0, now - self.start_time - self.total_paused_duration)
        previous = self._data_points[-1] if self._data_points else None
        delta_seconds = 0.0
        if previous is not None:
            # clock skew must not move elapsed backwards
            elapsed = max(elapsed, previous.elapsed)
            delta_seconds = (elapsed - previous.elapsed) / 1000

        distance = self.last_distance
        if reading.distance is not None and reading.distance > self.last_distance:
            distance = float(reading.distance)
        elif reading.speed and reading.speed > 0 and delta_seconds > 0:
            distance += reading.speed / 3.6 * delta_seconds
        self.last_distance = distance

        self._data_points.append(
            DataPoint(
                timestamp=now,
                elapsed=elapsed,
                power=round(reading.power or 0),
                cadence=round(reading.cadence or 0),
                speed=float(reading.speed or 0.0),
                hr=reading.hr or 0,
                distance=distance,
            )
        )

        if len(self._data_points) % self._config.snapshot_every == 0:
            self._persist()

    def add_hr_data(self, sample: HeartRateSample) -> None:
        """Patch the heart rate of the latest point and buffer RR intervals."""
        if not self.is_recording or self.is_paused:
            return
        if self._data_points:
            self._data_points[-1] = replace(self._data_points[-1], hr=sample.hr)
        self._rr_intervals.extend(RRInterval(sample.timestamp, rr) for rr in sample.rr_intervals)

    def get_ride_data(self, profile: RiderProfile | None = None) -> RideData | None:
        """Build the ride record, or None when nothing was recorded."""
        if not self._data_points or self.start_time is None:
            return None
        return RideData(
            start_time=self.start_time,
            duration=self._data_points[-1].elapsed,
            data_points=list(self._data_points),
            rr_intervals=list(self._rr_intervals),
            summary=self._summarize(profile),
        )

    def _summarize(self, profile: RiderProfile | None) -> RideSummary:
        points = self._data_points
        heart_rates = [p.hr for p in points if p.hr > 0]

        power_zones: dict[int, int] | None = None
        hr_zones: dict[int, int] | None = None
        if profile is not None:
            power_zones = dict.fromkeys(range(1, POWER_ZONE_COUNT + 1), 0)
            hr_zones = dict.fromkeys(range(1, HR_ZONE_COUNT + 1), 0)
            sample_ms = round(self._config.sample_interval * 1000)
            previous_elapsed: int | None = None
            for point in points:
                # Time since the previous sample, with paused time already excluded.
                # The first retained point stands for one sample, not for any
                # history dropped from a recovery snapshot.
                if previous_elapsed is None:
                    duration = min(point.elapsed, sample_ms)
                else:
                    duration = point.elapsed - previous_elapsed
                previous_elapsed = point.elapsed

                power_zone = get_power_zone(point.power, profile.ftp)
                if power_zone.zone:
                    power_zones[power_zone.zone] += duration
                if point.hr > 0:
                    hr_zone = get_hr_zone(point.hr, profile.max_hr)
                    if hr_zone.zone:
                        hr_zones[hr_zone.zone] += duration

        return RideSummary(
            avg_power=round(sum(p.power for p in points) / len(points)),
            max_power=max(p.power for p in points),
            avg_cadence=round(sum(p.cadence for p in points) / len(points)),
            avg_hr=round(sum(heart_rates) / len(heart_rates)) if heart_rates else 0,
            max_hr=max(heart_rates, default=0),
            distance_km=self.last_distance / 1000,
            time_in_power_zones=power_zones,
            time_in_hr_zones=hr_zones,
        )

    def recover_ride(self) -> bool:
        """Restore an interrupted ride from its snapshot and resume recording.

        Only the retained tail of points survives; returns False when there
        is no usable snapshot.
        """
        try:
            raw = self._store.get(RIDE_IN_PROGRESS_KEY)
        except OSError as e:
            LOGGER.error("Could not read recovery snapshot: %s", e)
            return False
        if raw is None:
            return False

        try:
            snapshot = RecoverySnapshot.model_validate_json(raw)
        except ValidationError as e:
            LOGGER.error("Failed to recover ride: %s", e)
            try:
                self._store.delete(RIDE_IN_PROGRESS_KEY)
            except OSError as delete_error:
                LOGGER.error("Could not remove recovery snapshot: %s", delete_error)
            return False

        self.start_time = snapshot.start_time
        self.pause_start_time = snapshot.pause_start_time
        self.total_paused_duration = snapshot.total_paused_duration
        self.is_paused = snapshot.is_paused
        self._data_points = list(snapshot.data_points)
        self._rr_intervals = list(snapshot.rr_intervals)
        self.last_distance = self._data_points[-1].distance if self._data_points else 0.0
        self.is_recording = True
        self._stopped = False
        LOGGER.info("Recovered ride with %d points", len(self._data_points))
        return True

    def get_full_session_data(self) -> list[DataPoint]:
        return list(self._data_points)

    def get_recent_data(self, window_seconds: float = 120) -> list[DataPoint]:
        """Return points from the last window_seconds of wall-clock time.

        The filter uses timestamps, so a pause inside the window leaves fewer
        points than the window length suggests.
        """
        cutoff = self._clock() - window_seconds * 1000
        return [p for p in self._data_points if p.timestamp >= cutoff]

    def get_elapsed_seconds(self) -> int:
        """Return whole seconds ridden, excluding completed and ongoing pauses."""
        if self.start_time is None:
            return 0
        now = self._clock()
        current_pause = 0
        if self.is_paused and self.pause_start_time is not None:
            current_pause = now - self.pause_start_time
        elapsed_ms = now - self.start_time - self.total_paused_duration - current_pause
        return max(0, elapsed_ms) // 1000

    def _snapshot(self, max_points: int, max_rr: int) -> str:
        if self.start_time is None:
            raise RuntimeError("No ride in progress to snapshot")
        snapshot = RecoverySnapshot(
            start_time=self.start_time,
            pause_start_time=self.pause_start_time,
            total_paused_duration=self.total_paused_duration,
            is_paused=self.is_paused,
            data_points=_tail(self._data_points, max_points),
            rr_intervals=_tail(self._rr_intervals, max_rr),
        )
        return snapshot.model_dump_json(by_alias=True)

    def _persist(self) -> None:
        """Write the recovery snapshot; failures are logged, never raised."""
        if self.start_time is None:
            return
        max_points = self._config.snapshot_max_points
        max_rr = self._config.snapshot_max_rr
        try:
            self._store.set(RIDE_IN_PROGRESS_KEY, self._snapshot(max_points, max_rr))
            return
        except StorageFullError:
            LOGGER.warning("Storage full, retrying with a smaller recovery snapshot")
        except OSError as e:
            LOGGER.error("Could not save recovery snapshot: %s", e)
            return

        try:
            self._store.set(RIDE_IN_PROGRESS_KEY, self._snapshot(max_points // 2, max_rr // 2))
        except (StorageFullError, OSError) as e:
            LOGGER.error("Could not save recovery snapshot: %s", e)
