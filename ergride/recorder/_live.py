from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import replace

from .._models import HeartRateSample, TelemetrySample
from ._models import LiveReading
from ._recorder import RideRecorder

LOGGER = logging.getLogger(__name__)


class LiveMetrics:
    """Latest known values from the trainer and heart-rate sensor.

    Each update only overwrites the fields the notification actually
    carried, so a frame without power keeps the last known power.
    """

    def __init__(self) -> None:
        self._reading = LiveReading()

    def reading(self) -> LiveReading:
        return self._reading

    def update_trainer(self, sample: TelemetrySample) -> None:
        changes = {
            name: value
            for name, value in (
                ("power", sample.power),
                ("cadence", sample.cadence),
                ("speed", sample.speed),
                ("distance", sample.distance),
            )
            if value is not None
        }
        if changes:
            self._reading = replace(self._reading, **changes)

    def update_heart_rate(self, sample: HeartRateSample) -> None:
        self._reading = replace(self._reading, hr=sample.hr)

    def reset(self) -> None:
        self._reading = LiveReading()


class RideSampler:
    """Feeds live values into a recorder on a fixed tick.

    handle_trainer_data and handle_heart_rate are meant to be used as the
    on_data callbacks of the device manager.
    """

    def __init__(
        self,
        recorder: RideRecorder,
        live: LiveMetrics | None = None,
        *,
        interval: float = 1.0,
    ) -> None:
        self.recorder = recorder
        self.live = live or LiveMetrics()
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def handle_trainer_data(self, sample: TelemetrySample) -> None:
        self.live.update_trainer(sample)

    def handle_heart_rate(self, sample: HeartRateSample) -> None:
        self.live.update_heart_rate(sample)
        self.recorder.add_hr_data(sample)

    def tick(self) -> None:
        """Record the current live values once."""
        self.recorder.add_data_point(self.live.reading())

    def start(self) -> None:
        """Start ticking in the background."""
        if self.running:
            LOGGER.warning("Sampler already running")
            return

        async def _sample_loop() -> None:
            LOGGER.debug("Sampler started with %.1fs interval", self.interval)
            while True:
                await asyncio.sleep(self.interval)
                try:
                    self.tick()
                except Exception:
                    LOGGER.exception("Sampling tick failed")

        self._task = asyncio.create_task(_sample_loop())

    async def stop(self) -> None:
        """Stop the background tick."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            LOGGER.debug("Sampler stopped")
