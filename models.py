from __future__ import annotations

import datetime
import enum
from typing import Annotated, ClassVar, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)


SetTriple = Tuple[Optional[float], Optional[float], Optional[float]]

EMPTY_SETS: SetTriple = (None, None, None)


def parse_timestamp(ts: str) -> datetime.datetime:
    """Return ``ts`` as timezone-aware datetime, assuming UTC when naive."""
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    dt = datetime.datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


class ExerciseType(str, enum.Enum):
    """Measurement kind of an exercise."""

    PESO = "PESO"
    ALONGAMENTO = "ALONGAMENTO"
    AEROBICO = "AEROBICO"


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    # optional keys left out of the document while unset
    omit_when_none: ClassVar[Tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def _drop_absent(self, handler: SerializerFunctionWrapHandler):
        data = handler(self)
        for name in self.omit_when_none:
            if getattr(self, name) is None:
                data.pop(name, None)
                data.pop(type(self).model_fields[name].alias, None)
        return data


class Media(_Record):
    uri: str
    kind: Literal["image", "video"]


class WorkoutExercise(_Record):
    omit_when_none = ("description", "media")

    name: str
    type: ExerciseType
    description: Optional[str] = None
    media: Optional[Media] = None


class Workout(_Record):
    omit_when_none = ("description",)

    id: str
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    exercises: List[WorkoutExercise] = Field(default_factory=list)
    created_at: str = Field(..., alias="createdAt")


class WorkoutUpdate(_Record):
    """Partial workout fields; only explicitly set fields are merged."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    exercises: Optional[List[WorkoutExercise]] = None


class WeightLog(_Record):
    type: Literal["PESO"] = "PESO"
    exercise_name: str = Field(..., alias="exerciseName")
    sets: SetTriple = EMPTY_SETS


class StretchLog(_Record):
    type: Literal["ALONGAMENTO"] = "ALONGAMENTO"
    exercise_name: str = Field(..., alias="exerciseName")
    seconds: Optional[float] = None


class CardioLog(_Record):
    type: Literal["AEROBICO"] = "AEROBICO"
    exercise_name: str = Field(..., alias="exerciseName")
    minutes: Optional[float] = None


SessionExerciseLog = Annotated[
    Union[WeightLog, StretchLog, CardioLog], Field(discriminator="type")
]


class NewSession(_Record):
    """A finished session as handed over by the caller, before an id exists."""

    omit_when_none = ("calories",)

    workout_id: str = Field(..., alias="workoutId")
    started_at: str = Field(..., alias="startedAt")
    ended_at: str = Field(..., alias="endedAt")
    entries: List[SessionExerciseLog] = Field(default_factory=list)
    calories: Optional[int] = None

    @field_validator("started_at", "ended_at")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value


class Session(NewSession):
    id: str


class Db(_Record):
    workouts: List[Workout] = Field(default_factory=list)
    sessions: List[Session] = Field(default_factory=list)


def dump(record: BaseModel) -> dict:
    """Return the JSON-ready camelCase representation of ``record``."""
    return record.model_dump(mode="json", by_alias=True)
