from typing import Literal

from pydantic import BaseModel, ValidationError, conint


class SettingsSchema(BaseModel):
    weight_unit: Literal["kg", "lbs"] = "kg"
    distance_unit: Literal["km", "mi", "m", "yd"] = "mi"
    rest_default_seconds: conint(gt=0) = 60
    volume_completed_only: bool = False
    detect_personal_records: bool = False
    lockout_threshold_days: conint(ge=0) = 7
    finalize_retries: conint(ge=0) = 2


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
