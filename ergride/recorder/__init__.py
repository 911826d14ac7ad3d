"""Ride recording, crash recovery, history and export data."""

from ._export import FitActivity, FitHrv, FitRecord, build_fit_activity, fit_filename
from ._history import RIDE_HISTORY_KEY, HistoryEntry, RideHistory
from ._live import LiveMetrics, RideSampler
from ._models import (
    DataPoint,
    LiveReading,
    RecorderConfig,
    RecorderState,
    RecoverySnapshot,
    RideData,
    RiderProfile,
    RideSummary,
    RRInterval,
)
from ._recorder import RIDE_IN_PROGRESS_KEY, RideRecorder
from ._storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "RIDE_HISTORY_KEY",
    "RIDE_IN_PROGRESS_KEY",
    "DataPoint",
    "FitActivity",
    "FitHrv",
    "FitRecord",
    "HistoryEntry",
    "JsonFileStore",
    "KeyValueStore",
    "LiveMetrics",
    "LiveReading",
    "MemoryStore",
    "RRInterval",
    "RecorderConfig",
    "RecorderState",
    "RecoverySnapshot",
    "RideData",
    "RideHistory",
    "RideRecorder",
    "RideSampler",
    "RideSummary",
    "RiderProfile",
    "build_fit_activity",
    "fit_filename",
]
