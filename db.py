import datetime
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from config import YamlConfig
from models import (
    Db,
    NewSession,
    Session,
    Workout,
    WorkoutExercise,
    WorkoutUpdate,
    dump,
)
from settings_schema import SettingsSchema, validate_settings
from tools import parse_timestamp

logger = logging.getLogger(__name__)

STORAGE_KEY = "@gym_ts_v3"

T = TypeVar("T")

_INT_SETTINGS = {
    name for name, field in SettingsSchema.model_fields.items() if field.annotation is int
}


class PersistenceError(RuntimeError):
    """Raised when the store snapshot could not be serialized or written."""


def generate_id() -> str:
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, _columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql)

    def _ensure_table(self, conn: sqlite3.Connection, table: str, sql: str) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)

    def _init_settings(self) -> None:
        defaults = SettingsSchema().model_dump()
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class BlobRepository(BaseRepository):
    """Key-value blob storage; each ``set`` replaces the value atomically."""

    def get(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def set(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )


class RecordStore:
    """Workouts and sessions kept as one JSON document under a single key.

    Every operation reads the whole document and write operations store the
    whole document back, so a workout deletion and its cascading session
    deletion always land in the same snapshot.
    """

    def __init__(self, db_path: str = "workout.db", storage_key: str = STORAGE_KEY) -> None:
        self.blobs = BlobRepository(db_path)
        self.storage_key = storage_key

    def _read(self) -> Optional[str]:
        try:
            return self.blobs.get(self.storage_key)
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read {self.storage_key}: {e}") from e

    def load(self) -> Db:
        """Current snapshot; an unreadable stored value loads as an empty store."""
        raw = self._read()
        if raw is None:
            return Db()
        try:
            return Db.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Ignoring unreadable snapshot under %s: %s", self.storage_key, e
            )
            return Db()

    def _load_for_write(self) -> Db:
        """Snapshot to modify; an unreadable stored value is never replaced."""
        raw = self._read()
        if raw is None:
            return Db()
        try:
            return Db.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Refusing to overwrite unreadable %s", self.storage_key)
            raise PersistenceError(
                f"stored {self.storage_key} is unreadable, not overwriting it: {e}"
            ) from e

    def save(self, db: Db) -> None:
        try:
            payload = json.dumps(dump(db), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"could not serialize store: {e}") from e
        try:
            self.blobs.set(self.storage_key, payload)
        except sqlite3.Error as e:
            logger.error("Writing %s failed: %s", self.storage_key, e)
            raise PersistenceError(f"could not write {self.storage_key}: {e}") from e

    def _modify(self, change: Callable[[Db], T]) -> T:
        db = self._load_for_write()
        result = change(db)
        self.save(db)
        return result

    # workouts

    def list_workouts(self) -> List[Workout]:
        return self.load().workouts

    def get_workout(self, workout_id: str) -> Optional[Workout]:
        return next((w for w in self.load().workouts if w.id == workout_id), None)

    def create_workout(self, name: str, description: str | None = None) -> Workout:
        if not name or not name.strip():
            raise ValueError("workout name must not be empty")
        workout = Workout(
            id=generate_id(),
            name=name,
            description=description,
            exercises=[],
            created_at=utc_now_iso(),
        )

        def change(db: Db) -> Workout:
            db.workouts.append(workout)
            return workout

        self._modify(change)
        logger.info("Created workout %s", workout.id)
        return workout

    def update_workout(
        self, workout_id: str, updates: Union[WorkoutUpdate, dict]
    ) -> Optional[Workout]:
        """Merge the supplied fields into a workout; ``None`` if it is unknown."""
        if isinstance(updates, dict):
            updates = WorkoutUpdate.model_validate(updates)
        db = self._load_for_write()
        for index, workout in enumerate(db.workouts):
            if workout.id == workout_id:
                break
        else:
            return None
        data = workout.model_dump()
        data.update(updates.model_dump(exclude_unset=True))
        merged = Workout.model_validate(data)
        db.workouts[index] = merged
        self.save(db)
        return merged

    def delete_workout(self, workout_id: str) -> bool:
        db = self._load_for_write()
        if not any(w.id == workout_id for w in db.workouts):
            return False
        db.workouts = [w for w in db.workouts if w.id != workout_id]
        removed = len(db.sessions)
        db.sessions = [s for s in db.sessions if s.workout_id != workout_id]
        removed -= len(db.sessions)
        self.save(db)
        logger.info("Deleted workout %s with %d sessions", workout_id, removed)
        return True

    def add_exercise(
        self, workout_id: str, exercise: Union[WorkoutExercise, dict]
    ) -> Optional[Workout]:
        workout = self.get_workout(workout_id)
        if workout is None:
            return None
        if isinstance(exercise, dict):
            exercise = WorkoutExercise.model_validate(exercise)
        return self.update_workout(
            workout_id, WorkoutUpdate(exercises=[*workout.exercises, exercise])
        )

    def update_exercise(
        self, workout_id: str, index: int, updates: dict
    ) -> Optional[Workout]:
        workout = self.get_workout(workout_id)
        if workout is None or not 0 <= index < len(workout.exercises):
            return None
        exercises = list(workout.exercises)
        data = exercises[index].model_dump()
        data.update(updates)
        exercises[index] = WorkoutExercise.model_validate(data)
        return self.update_workout(workout_id, WorkoutUpdate(exercises=exercises))

    def remove_exercise(self, workout_id: str, index: int) -> Optional[Workout]:
        workout = self.get_workout(workout_id)
        if workout is None or not 0 <= index < len(workout.exercises):
            return None
        exercises = [e for i, e in enumerate(workout.exercises) if i != index]
        return self.update_workout(workout_id, WorkoutUpdate(exercises=exercises))

    def workout_name(self, workout_id: str, fallback: str = "Deleted workout") -> str:
        workout = self.get_workout(workout_id)
        return workout.name if workout is not None else fallback

    # sessions

    def list_sessions(self) -> List[Session]:
        return self.load().sessions

    def recent_sessions(self) -> List[Session]:
        """Sessions ordered from the most recently started."""
        return sorted(
            self.list_sessions(),
            key=lambda s: parse_timestamp(s.started_at),
            reverse=True,
        )

    def get_session(self, session_id: str) -> Optional[Session]:
        return next((s for s in self.load().sessions if s.id == session_id), None)

    def create_session(self, new_session: Union[NewSession, dict]) -> Session:
        if isinstance(new_session, dict):
            new_session = NewSession.model_validate(new_session)
        session = Session(id=generate_id(), **new_session.model_dump())

        def change(db: Db) -> Session:
            db.sessions.append(session)
            return session

        self._modify(change)
        logger.info("Created session %s for workout %s", session.id, session.workout_id)
        return session

    def delete_session(self, session_id: str) -> bool:
        db = self._load_for_write()
        remaining = [s for s in db.sessions if s.id != session_id]
        if len(remaining) == len(db.sessions):
            return False
        db.sessions = remaining
        self.save(db)
        logger.info("Deleted session %s", session_id)
        return True


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in _INT_SETTINGS and v.lstrip("-").isdigit():
                result[k] = int(v)
            else:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self.all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        data = self.all_settings()
        data[key] = value
        validate_settings(data)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def update(self, values: dict) -> None:
        """Validate and store several settings at once."""
        data = self.all_settings()
        data.update(values)
        validate_settings(data)
        with self._connection() as conn:
            for key, value in values.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )
        self._sync_to_yaml()
