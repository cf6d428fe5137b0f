# app/schemas/appointment.py

from datetime import date as _Date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from app.db.models.appointment import AppointmentStatus

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentCreate(BaseModel):
    business_id: int
    customer_id: int
    date: str = Field(..., pattern=DATE_PATTERN, description="Business-local date, YYYY-MM-DD")
    start_time: str = Field(..., pattern=TIME_PATTERN, description="Business-local time, HH:MM (24h)")
    duration_min: int = Field(30, gt=0, le=24 * 60)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("date")
    @classmethod
    def _real_date(cls, v: str) -> str:
        _Date.fromisoformat(v)
        return v


class AppointmentReschedule(BaseModel):
    date: str = Field(..., pattern=DATE_PATTERN)
    start_time: str = Field(..., pattern=TIME_PATTERN)

    @field_validator("date")
    @classmethod
    def _real_date(cls, v: str) -> str:
        _Date.fromisoformat(v)
        return v


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentOut(BaseModel):
    id: int
    business_id: int
    customer_id: int
    date: str
    start_time: str
    duration_min: int
    status: str
    notes: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class EligibilityOut(BaseModel):
    business_id: int
    customer_id: int
    eligible: bool


class StatusOptionsOut(BaseModel):
    appointment_id: int
    is_past: bool
    options: list[str]
