import requests
from typing import Optional

class BuilderClient:
    """Simple REST client for the workout API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, **params):
        resp = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def create_workout(self, name: str, description: Optional[str] = None) -> dict:
        params = {"name": name}
        if description is not None:
            params["description"] = description
        resp = requests.post(f"{self.base_url}/workouts", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def list_workouts(self) -> list:
        return self._get("/workouts")

    def add_exercise(self, workout_id: str, name: str, exercise_type: str) -> dict:
        resp = requests.post(
            f"{self.base_url}/workouts/{workout_id}/exercises",
            json={"name": name, "type": exercise_type},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def log_session(self, workout_id: str, started_at: str, ended_at: str, entries: list) -> dict:
        resp = requests.post(
            f"{self.base_url}/sessions",
            json={
                "workoutId": workout_id,
                "startedAt": started_at,
                "endedAt": ended_at,
                "entries": entries,
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def weight_hints(self, exercise: str, workout_id: Optional[str] = None) -> dict:
        params = {"exercise": exercise}
        if workout_id is not None:
            params["workout_id"] = workout_id
        return self._get("/hints/weight", **params)

    def overview(self, year: int) -> dict:
        return self._get("/stats/overview", year=year)
