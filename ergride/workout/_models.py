from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WorkoutStep(BaseModel):
    """A block of constant ERG target power."""

    model_config = ConfigDict(frozen=True)

    duration: int = Field(gt=0)  # seconds
    power: int = Field(ge=0)  # watts
    name: str = ""


class Workout(BaseModel):
    """An ordered list of timed power steps."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    steps: tuple[WorkoutStep, ...] = Field(min_length=1)

    @property
    def total_duration(self) -> int:
        """Length of the whole workout in seconds."""
        return sum(step.duration for step in self.steps)

    def step_at(self, elapsed_seconds: int) -> tuple[int, WorkoutStep] | None:
        """Return the index and step active after elapsed_seconds, or None once finished."""
        start = 0
        for index, step in enumerate(self.steps):
            if elapsed_seconds < start + step.duration:
                return index, step
            start += step.duration
        return None


def _intervals(count: int, work: int, rest: int, seconds: int) -> list[WorkoutStep]:
    steps = []
    for i in range(1, count + 1):
        steps.append(WorkoutStep(duration=seconds, power=work, name=f"VO2max Interval {i}"))
        steps.append(WorkoutStep(duration=seconds, power=rest, name="Recovery"))
    return steps


# 5x3 min at 120% of a 200 W FTP
VO2MAX_TEST_WORKOUT = Workout(
    id="vo2max-test",
    name="VO2max 5x3 intervals",
    description="50-minute VO2max session with 5x3min intervals at 120% FTP.",
    steps=(
        WorkoutStep(duration=300, power=100, name="Warmup Part 1"),
        WorkoutStep(duration=300, power=150, name="Warmup Part 2"),
        *_intervals(5, work=240, rest=100, seconds=180),
        WorkoutStep(duration=600, power=100, name="Cool Down"),
    ),
)

BUILT_IN_WORKOUTS: dict[str, Workout] = {
    "vo2max": VO2MAX_TEST_WORKOUT,
}
