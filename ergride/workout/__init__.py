"""Structured ERG workouts and the player that drives them."""

from ._models import BUILT_IN_WORKOUTS, VO2MAX_TEST_WORKOUT, Workout, WorkoutStep
from ._player import TargetPowerSetter, WorkoutPlayer

__all__ = [
    "BUILT_IN_WORKOUTS",
    "VO2MAX_TEST_WORKOUT",
    "TargetPowerSetter",
    "Workout",
    "WorkoutPlayer",
    "WorkoutStep",
]
