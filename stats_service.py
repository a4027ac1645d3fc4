from __future__ import annotations

import datetime
import math
from typing import Dict, List, Optional, Tuple, Type, Union

from db import RecordStore, SettingsRepository
from models import CardioLog, Session, StretchLog, WeightLog
from tools import MathTools, normalize_name, parse_timestamp


class StatisticsService:
    """Compute dashboard statistics from the full session history.

    Nothing is cached: each call reloads the sessions from the store.
    """

    DEFAULT_WINDOW_DAYS = 30

    def __init__(
        self,
        store: RecordStore,
        settings_repo: SettingsRepository | None = None,
    ) -> None:
        self.store = store
        self.settings = settings_repo

    def _window_days(self, key: str, window_days: Optional[int]) -> int:
        if window_days is not None:
            return window_days
        if self.settings is not None:
            return self.settings.get_int(key, self.DEFAULT_WINDOW_DAYS)
        return self.DEFAULT_WINDOW_DAYS

    @staticmethod
    def _month_key(dt: datetime.datetime) -> str:
        return f"{dt.year:04d}-{dt.month:02d}"

    @staticmethod
    def _session_total(
        session: Session, kind: Union[Type[CardioLog], Type[StretchLog]]
    ) -> float:
        attr = "minutes" if kind is CardioLog else "seconds"
        return sum(
            MathTools.valid_numbers(
                getattr(e, attr) for e in session.entries if isinstance(e, kind)
            )
        )

    def _chronological(self) -> List[Tuple[datetime.datetime, Session]]:
        timed = [(parse_timestamp(s.started_at), s) for s in self.store.list_sessions()]
        return sorted(timed, key=lambda item: item[0])

    def _recent(
        self, window_days: int, now: Optional[datetime.datetime]
    ) -> List[Session]:
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=datetime.timezone.utc)
        cutoff = now - datetime.timedelta(days=window_days)
        return [
            s
            for s in self.store.list_sessions()
            if parse_timestamp(s.started_at) >= cutoff
        ]

    def _per_workout(
        self,
        kind: Union[Type[CardioLog], Type[StretchLog]],
        window_days: int,
        now: Optional[datetime.datetime],
    ) -> Dict[str, Tuple[float, int]]:
        """Total and contributing-session count per workout id."""
        totals: Dict[str, Tuple[float, int]] = {}
        for session in self._recent(window_days, now):
            total = self._session_total(session, kind)
            if total > 0:
                current, count = totals.get(session.workout_id, (0.0, 0))
                totals[session.workout_id] = (current + total, count + 1)
        return totals

    def yearly_frequency(self, year: int) -> List[int]:
        """Session count for each month of ``year``, January first."""
        counts = [0] * 12
        for session in self.store.list_sessions():
            dt = parse_timestamp(session.started_at)
            if dt.year == year:
                counts[dt.month - 1] += 1
        return counts

    def cardio_minutes_per_workout(
        self,
        window_days: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[Dict[str, float]]:
        days = self._window_days("cardio_window_days", window_days)
        return [
            {"workoutId": wid, "totalMinutes": total}
            for wid, (total, _) in self._per_workout(CardioLog, days, now).items()
        ]

    def avg_cardio_minutes_per_workout(
        self,
        window_days: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[Dict[str, float]]:
        """Cardio minutes per workout divided by sessions that had cardio."""
        days = self._window_days("cardio_window_days", window_days)
        return [
            {"workoutId": wid, "avgMinutes": total / count}
            for wid, (total, count) in self._per_workout(CardioLog, days, now).items()
        ]

    def stretch_seconds_per_workout(
        self,
        window_days: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[Dict[str, float]]:
        days = self._window_days("stretch_window_days", window_days)
        return [
            {"workoutId": wid, "totalSeconds": total}
            for wid, (total, _) in self._per_workout(StretchLog, days, now).items()
        ]

    def avg_stretch_seconds_per_workout(
        self,
        window_days: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> List[Dict[str, float]]:
        days = self._window_days("stretch_window_days", window_days)
        return [
            {"workoutId": wid, "avgSeconds": total / count}
            for wid, (total, count) in self._per_workout(StretchLog, days, now).items()
        ]

    def avg_cardio_minutes_per_month(self) -> List[Dict[str, float]]:
        buckets: Dict[str, Tuple[float, int]] = {}
        for dt, session in self._chronological():
            total = self._session_total(session, CardioLog)
            if total > 0:
                key = self._month_key(dt)
                current, count = buckets.get(key, (0.0, 0))
                buckets[key] = (current + total, count + 1)
        return [
            {"month": month, "avgMinutes": total / count}
            for month, (total, count) in sorted(buckets.items())
        ]

    def monthly_average_frequency(self) -> float:
        """Sessions per month, counting only months that had a session."""
        sessions = self.store.list_sessions()
        if not sessions:
            return 0.0
        months = {self._month_key(parse_timestamp(s.started_at)) for s in sessions}
        return len(sessions) / len(months)

    def weight_evolution(self) -> List[Dict[str, float]]:
        """Range of third-set weights per exercise, best improvement first.

        Only the third set is tracked. Exercises need at least two recorded
        values to be listed.
        """
        names: Dict[str, str] = {}
        values: Dict[str, List[float]] = {}
        for _, session in self._chronological():
            for entry in session.entries:
                if not isinstance(entry, WeightLog):
                    continue
                third = entry.sets[2]
                if not MathTools.is_number(third):
                    continue
                key = normalize_name(entry.exercise_name)
                names.setdefault(key, entry.exercise_name)
                values.setdefault(key, []).append(third)
        result = []
        for key, weights in values.items():
            if len(weights) < 2:
                continue
            low, high = min(weights), max(weights)
            improvement = MathTools.percent_change(high, low) if low != 0 else 0.0
            result.append(
                {
                    "exerciseName": names[key],
                    "minWeight": low,
                    "maxWeight": high,
                    "lastWeight": weights[-1],
                    "improvement": improvement,
                }
            )
        return sorted(result, key=lambda x: x["improvement"], reverse=True)

    def cardio_evolution(self) -> Optional[Dict[str, float]]:
        """Compare average cardio minutes of the first and the last month.

        With a history inside one calendar month a session counts in both
        buckets.
        """
        timed = self._chronological()
        if not timed:
            return None
        first, last = timed[0][0], timed[-1][0]
        first_month = (first.year, first.month)
        last_month = (last.year, last.month)
        initial: List[float] = []
        current: List[float] = []
        for dt, session in timed:
            total = self._session_total(session, CardioLog)
            if total <= 0:
                continue
            month = (dt.year, dt.month)
            if month <= first_month:
                initial.append(total)
            if month >= last_month:
                current.append(total)
        if not initial or not current:
            return None
        initial_avg = sum(initial) / len(initial)
        current_avg = sum(current) / len(current)
        return {
            "initialAvg": initial_avg,
            "currentAvg": current_avg,
            "improvement": MathTools.percent_change(current_avg, initial_avg),
        }

    @staticmethod
    def session_duration_minutes(session: Session) -> int:
        start = parse_timestamp(session.started_at)
        end = parse_timestamp(session.ended_at)
        return int(math.floor((end - start).total_seconds() / 60 + 0.5))

    def overview(
        self, year: int, window_days: Optional[int] = None
    ) -> Dict[str, object]:
        """Everything the statistics dashboard shows at once."""
        return {
            "yearlyFrequency": self.yearly_frequency(year),
            "avgCardioPerWorkout": self.avg_cardio_minutes_per_workout(window_days),
            "avgCardioPerMonth": self.avg_cardio_minutes_per_month(),
            "monthlyAverageFrequency": self.monthly_average_frequency(),
            "weightEvolution": self.weight_evolution(),
            "cardioEvolution": self.cardio_evolution(),
        }
