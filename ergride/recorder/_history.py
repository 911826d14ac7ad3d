from __future__ import annotations

import logging
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .._errors import StorageFullError
from ._models import DataPoint, RideData, RideSummary, RRInterval
from ._storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

RIDE_HISTORY_KEY = "ride_history"
# Entries kept when the store reports it is full
REDUCED_HISTORY_SIZE = 20


class HistoryEntry(BaseModel):
    """A finished ride with everything needed to export it again."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    profile_id: str | None = None
    start_time: int
    duration: int
    summary: RideSummary | None = None
    data_points: list[DataPoint] = Field(default_factory=list)
    rr_intervals: list[RRInterval] = Field(default_factory=list)

    def to_ride(self) -> RideData:
        return RideData(
            start_time=self.start_time,
            duration=self.duration,
            data_points=list(self.data_points),
            rr_intervals=list(self.rr_intervals),
            summary=self.summary,
        )


_ENTRIES = TypeAdapter(list[HistoryEntry])


class RideHistory:
    """Finished rides, newest first, capped at a fixed count."""

    def __init__(self, store: KeyValueStore, *, limit: int = 30) -> None:
        self._store = store
        self.limit = limit

    def entries(self) -> list[HistoryEntry]:
        raw = self._store.get(RIDE_HISTORY_KEY)
        if raw is None:
            return []
        try:
            return _ENTRIES.validate_json(raw)
        except ValidationError as e:
            LOGGER.error("Error reading ride history: %s", e)
            return []

    def for_profile(self, profile_id: str | None) -> list[HistoryEntry]:
        if not profile_id:
            return []
        return [entry for entry in self.entries() if entry.profile_id == profile_id]

    def get(self, ride_id: str) -> HistoryEntry | None:
        return next((entry for entry in self.entries() if entry.id == ride_id), None)

    def save(self, ride: RideData | None, profile_id: str | None = None) -> HistoryEntry | None:
        """Prepend a ride to the history; returns None if it could not be stored."""
        if ride is None:
            return None
        entry = HistoryEntry(
            profile_id=profile_id,
            start_time=ride.start_time,
            duration=ride.duration,
            summary=ride.summary,
            data_points=ride.data_points,
            rr_intervals=ride.rr_intervals,
        )
        existing = self.entries()
        try:
            self._write([entry, *existing][: self.limit])
        except StorageFullError:
            LOGGER.warning("Storage full, reducing ride history to %d rides", REDUCED_HISTORY_SIZE)
            try:
                self._write([entry, *existing][:REDUCED_HISTORY_SIZE])
            except (StorageFullError, OSError) as e:
                LOGGER.error("Failed to save ride even after reducing history: %s", e)
                return None
        except OSError as e:
            LOGGER.error("Error saving ride to history: %s", e)
            return None
        LOGGER.info("Saved ride %s to history", entry.id)
        return entry

    def delete(self, ride_id: str) -> bool:
        entries = self.entries()
        remaining = [entry for entry in entries if entry.id != ride_id]
        if len(remaining) == len(entries):
            return False
        self._write(remaining)
        return True

    def clear(self) -> None:
        """Remove every saved ride."""
        self._store.delete(RIDE_HISTORY_KEY)
        LOGGER.info("Ride history cleared")

    def _write(self, entries: list[HistoryEntry]) -> None:
        self._store.set(RIDE_HISTORY_KEY, _ENTRIES.dump_json(entries, by_alias=True).decode())
