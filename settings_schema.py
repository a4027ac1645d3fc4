from pydantic import BaseModel, Field, ValidationError

class SettingsSchema(BaseModel):
    storage_key: str = Field("@gym_ts_v3", min_length=1)
    cardio_window_days: int = Field(30, ge=1)
    stretch_window_days: int = Field(30, ge=1)
    deleted_workout_label: str = "Deleted workout"
    weight_unit: str = "kg"

def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
