from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from ._models import Workout, WorkoutStep

LOGGER = logging.getLogger(__name__)

TargetPowerSetter = Callable[[int], Awaitable[bool]]


class WorkoutPlayer:
    """Steps through a workout and sends each step's ERG target to the trainer.

    Time advances one second per tick, and only while ``active()`` is true,
    so a paused ride holds the current step. The target is written whenever
    a new step begins; a rejected write is logged and the workout goes on.
    """

    def __init__(
        self,
        workout: Workout,
        set_target_power: TargetPowerSetter,
        *,
        interval: float = 1.0,
        active: Callable[[], bool] | None = None,
        on_step: Callable[[int, WorkoutStep], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self.workout = workout
        self.interval = interval
        self._set_target_power = set_target_power
        self._active = active
        self._on_step = on_step
        self._on_complete = on_complete
        self.step_index = 0
        self.step_elapsed = 0
        self.finished = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def current_step(self) -> WorkoutStep:
        return self.workout.steps[self.step_index]

    @property
    def next_step(self) -> WorkoutStep | None:
        steps = self.workout.steps
        return steps[self.step_index + 1] if self.step_index + 1 < len(steps) else None

    @property
    def completed_seconds(self) -> int:
        done = sum(step.duration for step in self.workout.steps[: self.step_index])
        return done + self.step_elapsed

    @property
    def remaining_seconds(self) -> int:
        return max(0, self.workout.total_duration - self.completed_seconds)

    async def begin(self) -> None:
        """Apply the first step's target."""
        await self._apply_step()

    async def advance(self) -> None:
        """Count one second of riding and move to the next step when it is due."""
        if self.finished:
            return
        if self._active is not None and not self._active():
            return
        self.step_elapsed += 1
        if self.step_elapsed < self.current_step.duration:
            return
        if self.step_index + 1 < len(self.workout.steps):
            self.step_index += 1
            self.step_elapsed = 0
            await self._apply_step()
            return

        self.finished = True
        LOGGER.info("Workout %s complete", self.workout.name)
        if self._on_complete is not None:
            self._on_complete()

    def start(self) -> None:
        """Run the workout in the background until it finishes or stop() is called."""
        if self.running:
            LOGGER.warning("Workout already running")
            return

        async def _play() -> None:
            await self.begin()
            while not self.finished:
                await asyncio.sleep(self.interval)
                await self.advance()

        self._task = asyncio.create_task(_play())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _apply_step(self) -> None:
        step = self.current_step
        LOGGER.info(
            "Step %d/%d %s: %d W for %ds",
            self.step_index + 1,
            len(self.workout.steps),
            step.name or "-",
            step.power,
            step.duration,
        )
        if self._on_step is not None:
            self._on_step(self.step_index, step)
        if not await self._set_target_power(step.power):
            LOGGER.warning("Trainer did not accept %d W for step %d", step.power, self.step_index + 1)
