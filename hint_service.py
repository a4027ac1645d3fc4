from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Type, TypeVar

from db import RecordStore
from models import (
    EMPTY_SETS,
    CardioLog,
    ExerciseType,
    Session,
    SetTriple,
    StretchLog,
    WeightLog,
    Workout,
)
from tools import MathTools, normalize_name, parse_timestamp

E = TypeVar("E", WeightLog, StretchLog, CardioLog)


class HintService:
    """Last and average values shown next to an exercise while logging.

    Every lookup re-reads the full session history from the store, so the
    values always reflect the latest saved session.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    @staticmethod
    def _newest_first(sessions: Iterable[Session]) -> List[Session]:
        return sorted(
            sessions, key=lambda s: parse_timestamp(s.started_at), reverse=True
        )

    @staticmethod
    def _entry(session: Session, kind: Type[E], key: str) -> Optional[E]:
        for entry in session.entries:
            if isinstance(entry, kind) and normalize_name(entry.exercise_name) == key:
                return entry
        return None

    def _entries(self, kind: Type[E], exercise_name: str) -> List[E]:
        key = normalize_name(exercise_name)
        return [
            entry
            for session in self.store.list_sessions()
            for entry in session.entries
            if isinstance(entry, kind) and normalize_name(entry.exercise_name) == key
        ]

    def _last_value(
        self, kind: Type[E], exercise_name: str, value: Callable[[E], Optional[float]]
    ) -> Optional[float]:
        key = normalize_name(exercise_name)
        for session in self._newest_first(self.store.list_sessions()):
            entry = self._entry(session, kind, key)
            if entry is not None and value(entry) is not None:
                return value(entry)
        return None

    # weight sets

    def last_same_workout_sets(self, workout_id: str, exercise_name: str) -> SetTriple:
        """Sets logged the last time this workout included the exercise."""
        key = normalize_name(exercise_name)
        sessions = [s for s in self.store.list_sessions() if s.workout_id == workout_id]
        for session in self._newest_first(sessions):
            entry = self._entry(session, WeightLog, key)
            if entry is not None:
                return entry.sets
        return EMPTY_SETS

    def global_averages_by_set(self, exercise_name: str) -> SetTriple:
        """Per-set mean over every session of any workout."""
        entries = self._entries(WeightLog, exercise_name)
        return tuple(
            MathTools.mean(entry.sets[i] for entry in entries) for i in range(3)
        )

    def global_last_by_set(self, exercise_name: str) -> SetTriple:
        key = normalize_name(exercise_name)
        for session in self._newest_first(self.store.list_sessions()):
            entry = self._entry(session, WeightLog, key)
            if entry is not None:
                return entry.sets
        return EMPTY_SETS

    # stretch seconds

    def global_avg_seconds(self, exercise_name: str) -> Optional[float]:
        return MathTools.mean(e.seconds for e in self._entries(StretchLog, exercise_name))

    def global_last_seconds(self, exercise_name: str) -> Optional[float]:
        return self._last_value(StretchLog, exercise_name, lambda e: e.seconds)

    # cardio minutes

    def global_avg_minutes(self, exercise_name: str) -> Optional[float]:
        return MathTools.mean(e.minutes for e in self._entries(CardioLog, exercise_name))

    def global_last_minutes(self, exercise_name: str) -> Optional[float]:
        return self._last_value(CardioLog, exercise_name, lambda e: e.minutes)

    def hints_for_workout(self, workout: Workout) -> Dict[str, dict]:
        """Hints for every exercise of ``workout`` keyed by exercise name."""
        hints: Dict[str, dict] = {}
        for exercise in workout.exercises:
            if exercise.type == ExerciseType.PESO:
                hints[exercise.name] = {
                    "last_same_workout": self.last_same_workout_sets(
                        workout.id, exercise.name
                    ),
                    "global_avg": self.global_averages_by_set(exercise.name),
                    "global_last": self.global_last_by_set(exercise.name),
                }
            elif exercise.type == ExerciseType.ALONGAMENTO:
                hints[exercise.name] = {
                    "avg": self.global_avg_seconds(exercise.name),
                    "last": self.global_last_seconds(exercise.name),
                }
            else:
                hints[exercise.name] = {
                    "avg": self.global_avg_minutes(exercise.name),
                    "last": self.global_last_minutes(exercise.name),
                }
        return hints
