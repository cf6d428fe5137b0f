# app/schemas/daily_log.py

from datetime import date as _Date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from app.db.models.daily_log import NutritionStatus

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class _ReportBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: str = Field(..., pattern=DATE_PATTERN)
    client_note: Optional[str] = Field(None, max_length=2000)

    @field_validator("date")
    @classmethod
    def _real_date(cls, v: str) -> str:
        # pattern guarantees the shape; this rejects 2024-02-30 and friends
        _Date.fromisoformat(v)
        return v

    @field_validator("client_note")
    @classmethod
    def _trim_note(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class WorkoutReport(_ReportBase):
    # PLANNED is the implicit default and is never reported
    status: Literal["COMPLETED", "SKIPPED"]
    workout_plan_id: Optional[str] = Field(None, min_length=1, max_length=64)


class NutritionReport(_ReportBase):
    compliance_status: NutritionStatus
    meal_plan_id: Optional[str] = Field(None, min_length=1, max_length=64)


class FlagUpdate(BaseModel):
    flagged: bool


class CoachNoteUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: str = Field(..., pattern=DATE_PATTERN)
    coach_note: Optional[str] = Field(None, max_length=2000)

    @field_validator("date")
    @classmethod
    def _real_date(cls, v: str) -> str:
        _Date.fromisoformat(v)
        return v


class DailyLogOut(BaseModel):
    id: int
    owner_id: int
    date: str
    workout_status: Optional[str] = None
    workout_plan_id: Optional[str] = None
    workout_client_note: Optional[str] = None
    nutrition_status: Optional[str] = None
    meal_plan_id: Optional[str] = None
    nutrition_client_note: Optional[str] = None
    nutrition_coach_note: Optional[str] = None
    nutrition_coach_note_at: Optional[datetime] = None
    flagged: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
