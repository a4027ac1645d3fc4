import datetime
import logging
import time
from typing import List, Optional

from fastapi import Body, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from db import STORAGE_KEY, PersistenceError, RecordStore, SettingsRepository
from hint_service import HintService
from models import NewSession, SessionExerciseLog, WorkoutExercise, WorkoutUpdate, dump
from stats_service import StatisticsService
from tools import CalorieEstimator, sync_entries

logger = logging.getLogger(__name__)


class EntriesPayload(BaseModel):
    entries: List[SessionExerciseLog] = []


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self, limit: int = 60, window: int = 60) -> None:
        self.limit = limit
        self.window = window
        self.requests: dict[str, list[float]] = {}

    async def __call__(self, request: Request, call_next):
        ip = request.client.host if request.client else "anon"
        now = time.time()
        history = [t for t in self.requests.get(ip, []) if now - t < self.window]
        if len(history) >= self.limit:
            return Response("rate limit exceeded", status_code=429)
        history.append(now)
        self.requests[ip] = history
        return await call_next(request)


class GymAPI:
    """Provides REST endpoints for workout templates, sessions and statistics."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        *,
        rate_limit: int | None = None,
        rate_window: int = 60,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.store = RecordStore(
            db_path, self.settings.get_text("storage_key", STORAGE_KEY)
        )
        self.hints = HintService(self.store)
        self.statistics = StatisticsService(self.store, self.settings)
        self.app = FastAPI(
            title="Gym API",
            description="REST API for workout templates, sessions and analytics",
        )
        if rate_limit is not None:
            limiter = RateLimiter(limit=rate_limit, window=rate_window)
            self.app.middleware("http")(limiter)
        self._setup_routes()

    def _workout_or_404(self, workout_id: str):
        workout = self.store.get_workout(workout_id)
        if workout is None:
            raise HTTPException(status_code=404, detail="workout not found")
        return workout

    def _setup_routes(self) -> None:
        @self.app.exception_handler(PersistenceError)
        async def persistence_failed(request: Request, exc: PersistenceError):
            logger.error("Request %s failed to persist: %s", request.url.path, exc)
            return JSONResponse(status_code=500, content={"detail": str(exc)})

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.store.load()
                return {"status": "ok"}
            except PersistenceError as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.get("/workouts")
        def list_workouts():
            return [dump(w) for w in self.store.list_workouts()]

        @self.app.post("/workouts")
        def create_workout(name: str, description: str = None):
            try:
                workout = self.store.create_workout(name, description)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return dump(workout)

        @self.app.get("/workouts/{workout_id}")
        def get_workout(workout_id: str):
            return dump(self._workout_or_404(workout_id))

        @self.app.put("/workouts/{workout_id}")
        def update_workout(workout_id: str, updates: WorkoutUpdate = Body(...)):
            try:
                workout = self.store.update_workout(workout_id, updates)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if workout is None:
                raise HTTPException(status_code=404, detail="workout not found")
            return dump(workout)

        @self.app.delete("/workouts/{workout_id}")
        def delete_workout(workout_id: str):
            if not self.store.delete_workout(workout_id):
                raise HTTPException(status_code=404, detail="workout not found")
            return {"status": "deleted"}

        @self.app.post("/workouts/{workout_id}/exercises")
        def add_exercise(workout_id: str, exercise: WorkoutExercise = Body(...)):
            workout = self.store.add_exercise(workout_id, exercise)
            if workout is None:
                raise HTTPException(status_code=404, detail="workout not found")
            return dump(workout)

        @self.app.put("/workouts/{workout_id}/exercises/{index}")
        def update_exercise(workout_id: str, index: int, updates: dict = Body(...)):
            try:
                workout = self.store.update_exercise(workout_id, index, updates)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if workout is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            return dump(workout)

        @self.app.delete("/workouts/{workout_id}/exercises/{index}")
        def remove_exercise(workout_id: str, index: int):
            workout = self.store.remove_exercise(workout_id, index)
            if workout is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            return dump(workout)

        @self.app.get("/workouts/{workout_id}/entries")
        def blank_entries(workout_id: str):
            workout = self._workout_or_404(workout_id)
            return [dump(e) for e in sync_entries(workout)]

        @self.app.get("/workouts/{workout_id}/hints")
        def workout_hints(workout_id: str):
            return self.hints.hints_for_workout(self._workout_or_404(workout_id))

        @self.app.get("/sessions")
        def list_sessions():
            label = self.settings.get_text("deleted_workout_label", "Deleted workout")
            result = []
            for session in self.store.recent_sessions():
                item = dump(session)
                item["workoutName"] = self.store.workout_name(session.workout_id, label)
                item["durationMinutes"] = self.statistics.session_duration_minutes(session)
                result.append(item)
            return result

        @self.app.post("/sessions")
        def create_session(session: NewSession = Body(...)):
            if self.store.get_workout(session.workout_id) is None:
                raise HTTPException(status_code=404, detail="workout not found")
            session = session.model_copy(
                update={"calories": CalorieEstimator.estimate(session.entries)}
            )
            return dump(self.store.create_session(session))

        @self.app.get("/sessions/{session_id}")
        def get_session(session_id: str):
            session = self.store.get_session(session_id)
            if session is None:
                raise HTTPException(status_code=404, detail="session not found")
            return dump(session)

        @self.app.delete("/sessions/{session_id}")
        def delete_session(session_id: str):
            if not self.store.delete_session(session_id):
                raise HTTPException(status_code=404, detail="session not found")
            return {"status": "deleted"}

        @self.app.post("/calories/estimate")
        def estimate_calories(payload: EntriesPayload = Body(...)):
            return {"calories": CalorieEstimator.estimate(payload.entries)}

        @self.app.get("/hints/weight")
        def weight_hints(exercise: str, workout_id: Optional[str] = None):
            result = {
                "globalAvg": self.hints.global_averages_by_set(exercise),
                "globalLast": self.hints.global_last_by_set(exercise),
                "unit": self.settings.get_text("weight_unit", "kg"),
            }
            if workout_id is not None:
                result["lastSameWorkout"] = self.hints.last_same_workout_sets(
                    workout_id, exercise
                )
            return result

        @self.app.get("/hints/stretch")
        def stretch_hints(exercise: str):
            return {
                "avg": self.hints.global_avg_seconds(exercise),
                "last": self.hints.global_last_seconds(exercise),
            }

        @self.app.get("/hints/cardio")
        def cardio_hints(exercise: str):
            return {
                "avg": self.hints.global_avg_minutes(exercise),
                "last": self.hints.global_last_minutes(exercise),
            }

        @self.app.get("/stats/yearly_frequency")
        def stats_yearly_frequency(year: int = None):
            return self.statistics.yearly_frequency(year or datetime.date.today().year)

        @self.app.get("/stats/cardio_per_workout")
        def stats_cardio_per_workout(window_days: int = None, average: bool = False):
            if average:
                return self.statistics.avg_cardio_minutes_per_workout(window_days)
            return self.statistics.cardio_minutes_per_workout(window_days)

        @self.app.get("/stats/stretch_per_workout")
        def stats_stretch_per_workout(window_days: int = None, average: bool = False):
            if average:
                return self.statistics.avg_stretch_seconds_per_workout(window_days)
            return self.statistics.stretch_seconds_per_workout(window_days)

        @self.app.get("/stats/cardio_per_month")
        def stats_cardio_per_month():
            return self.statistics.avg_cardio_minutes_per_month()

        @self.app.get("/stats/monthly_frequency")
        def stats_monthly_frequency():
            return {"average": self.statistics.monthly_average_frequency()}

        @self.app.get("/stats/weight_evolution")
        def stats_weight_evolution():
            return self.statistics.weight_evolution()

        @self.app.get("/stats/cardio_evolution")
        def stats_cardio_evolution():
            return self.statistics.cardio_evolution()

        @self.app.get("/stats/overview")
        def stats_overview(year: int = None, window_days: int = None):
            return self.statistics.overview(
                year or datetime.date.today().year, window_days
            )

        @self.app.get("/settings/general")
        def get_general_settings():
            return self.settings.all_settings()

        @self.app.post("/settings/general")
        def update_general_settings(values: dict = Body(...)):
            try:
                self.settings.update(values)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}


api = GymAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
