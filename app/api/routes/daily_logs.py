# app/api/routes/daily_logs.py

from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now, viewer_timezone
from app.core.calendar import MONDAY, month_window, week_window
from app.core.clock import local_date_key
from app.core.errors import InvalidDateRange
from app.db.session import get_session
from app.schemas.daily_log import CoachNoteUpdate, DailyLogOut, FlagUpdate, NutritionReport, WorkoutReport
from app.services.compliance import (
    RangeView,
    build_range,
    set_coach_note,
    set_flag,
    upsert_nutrition_log,
    upsert_workout_log,
)

router = APIRouter(prefix="/daily-logs", tags=["daily-logs"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


async def _today_for(db: AsyncSession, customer_id: int, tz: Optional[str], now: datetime) -> str:
    return local_date_key(now, await viewer_timezone(db, customer_id, tz))


@router.post("/{customer_id}/workout", response_model=DailyLogOut)
async def report_workout(
    customer_id: int,
    payload: WorkoutReport,
    tz: Optional[str] = Query(None, description="Viewer IANA timezone"),
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    today = await _today_for(db, customer_id, tz, now)
    return await upsert_workout_log(
        db,
        owner_id=customer_id,
        date=payload.date,
        status=payload.status,
        now=now,
        today=today,
        client_note=payload.client_note,
        workout_plan_id=payload.workout_plan_id,
    )


@router.post("/{customer_id}/nutrition", response_model=DailyLogOut)
async def report_nutrition(
    customer_id: int,
    payload: NutritionReport,
    tz: Optional[str] = Query(None, description="Viewer IANA timezone"),
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    today = await _today_for(db, customer_id, tz, now)
    return await upsert_nutrition_log(
        db,
        owner_id=customer_id,
        date=payload.date,
        compliance_status=payload.compliance_status,
        now=now,
        today=today,
        client_note=payload.client_note,
        meal_plan_id=payload.meal_plan_id,
    )


@router.post("/{customer_id}/nutrition/coach-note", response_model=DailyLogOut)
async def coach_note(
    customer_id: int,
    payload: CoachNoteUpdate,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return await set_coach_note(db, owner_id=customer_id, date=payload.date, note=payload.coach_note, now=now)


@router.put("/{customer_id}/{date}/flag", response_model=DailyLogOut)
async def flag_day(
    customer_id: int,
    payload: FlagUpdate,
    date: str = Path(..., pattern=DATE_PATTERN),
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return await set_flag(db, owner_id=customer_id, date=date, flagged=payload.flagged, now=now)


@router.get("/{customer_id}/range", response_model=RangeView)
async def get_range(
    customer_id: int,
    start: str = Query(..., pattern=DATE_PATTERN),
    end: str = Query(..., pattern=DATE_PATTERN),
    tz: Optional[str] = Query(None, description="Viewer IANA timezone"),
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    today = await _today_for(db, customer_id, tz, now)
    return await build_range(db, customer_id, start, end, today=today)


@router.get("/{customer_id}/calendar", response_model=RangeView)
async def get_calendar(
    customer_id: int,
    view: Literal["week", "month"] = "week",
    anchor: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Any day inside the window; defaults to today"),
    week_starts_on: int = Query(MONDAY, ge=0, le=1, description="0=Sunday, 1=Monday"),
    tz: Optional[str] = Query(None, description="Viewer IANA timezone"),
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    today = await _today_for(db, customer_id, tz, now)
    try:
        if view == "week":
            start, end = week_window(anchor or today, week_starts_on)
        else:
            start, end = month_window(anchor or today)
    except ValueError as e:
        raise InvalidDateRange(str(e)) from e
    return await build_range(db, customer_id, start, end, today=today)
