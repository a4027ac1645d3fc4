from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from models import (
    CardioLog,
    ExerciseType,
    SessionExerciseLog,
    StretchLog,
    WeightLog,
    Workout,
    WorkoutExercise,
    parse_timestamp,
)


def normalize_name(name: str) -> str:
    """Canonical form used to match exercises across sessions."""
    return name.strip().casefold()


class MathTools:
    """Small numeric helpers shared by the hint and statistics services."""

    @staticmethod
    def is_number(value: Optional[float]) -> bool:
        return value is not None and not math.isnan(value)

    @classmethod
    def valid_numbers(cls, values: Iterable[Optional[float]]) -> List[float]:
        """Drop absent and NaN values."""
        return [v for v in values if cls.is_number(v)]

    @classmethod
    def mean(cls, values: Iterable[Optional[float]]) -> Optional[float]:
        """Arithmetic mean of the present values or ``None`` if there are none."""
        nums = cls.valid_numbers(values)
        if not nums:
            return None
        return sum(nums) / len(nums)

    @staticmethod
    def percent_change(current: float, initial: float) -> float:
        """Return the change from ``initial`` to ``current`` in percent."""
        if initial == 0:
            raise ValueError("initial must not be zero")
        return (current - initial) / initial * 100


class CalorieEstimator:
    """Rough calorie estimate for a session's entries."""

    KCAL_PER_SET: int = 6
    KCAL_PER_CARDIO_MINUTE: int = 6

    @classmethod
    def estimate(cls, entries: Iterable[SessionExerciseLog]) -> int:
        total = 0.0
        for entry in entries:
            if isinstance(entry, WeightLog):
                total += cls.KCAL_PER_SET * len(MathTools.valid_numbers(entry.sets))
            elif isinstance(entry, CardioLog):
                if MathTools.is_number(entry.minutes):
                    total += cls.KCAL_PER_CARDIO_MINUTE * entry.minutes
            elif isinstance(entry, StretchLog):
                continue
            else:
                raise TypeError(f"unsupported entry: {entry!r}")
        return int(round(total))


def empty_entry(exercise: WorkoutExercise) -> SessionExerciseLog:
    """Return a blank log entry matching the exercise's type."""
    kind = ExerciseType(exercise.type)
    if kind is ExerciseType.PESO:
        return WeightLog(exercise_name=exercise.name)
    if kind is ExerciseType.ALONGAMENTO:
        return StretchLog(exercise_name=exercise.name)
    if kind is ExerciseType.AEROBICO:
        return CardioLog(exercise_name=exercise.name)
    raise ValueError(f"Unknown exercise type: {exercise.type}")


def sync_entries(
    workout: Workout, saved: Sequence[SessionExerciseLog] = ()
) -> List[SessionExerciseLog]:
    """Align an in-progress entry list with the workout's current exercises.

    Entries already typed in for an exercise (same name and type) are kept,
    exercises added since get a blank entry and removed ones are dropped.
    """
    result: List[SessionExerciseLog] = []
    for exercise in workout.exercises:
        kind = ExerciseType(exercise.type).value
        existing = next(
            (
                e
                for e in saved
                if e.exercise_name == exercise.name and e.type == kind
            ),
            None,
        )
        result.append(existing if existing is not None else empty_entry(exercise))
    return result
