# app/services/compliance.py
"""
Daily compliance ledger: gated workout/nutrition upserts and calendar ranges.

Client reports go through ``is_reportable(date, today)``; only past days and
today accept them. Coach annotations are not gated. ``today`` is always
supplied by the caller (computed from an explicit ``now`` in the viewer's
timezone), never read from the server clock.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.calendar import DayState, classify, is_reportable, iter_date_keys, parse_date_key, span_days
from app.core.config import settings
from app.core.errors import (
    CustomerNotFound,
    FutureDateReportError,
    InvalidDate,
    InvalidDateRange,
    LogNotFound,
    PlanNotAssigned,
    StatusNotReportable,
)
from app.core.logging import get_logger
from app.crud.customer import get_customer, normalize_id_list
from app.crud.daily_log import get_daily_log, list_daily_logs, set_flagged, upsert_daily_log
from app.db.models.daily_log import DailyLog, NutritionStatus, WorkoutStatus

logger = get_logger(__name__)

# What a client may report; PLANNED is the implicit state of an unreported day
REPORTABLE_WORKOUT = frozenset({WorkoutStatus.COMPLETED.value, WorkoutStatus.SKIPPED.value})

# Statuses a coach should look at even without an explicit flag
ATTENTION_WORKOUT = frozenset({WorkoutStatus.SKIPPED.value})
ATTENTION_NUTRITION = frozenset({
    NutritionStatus.PARTIALLY_FOLLOWED.value,
    NutritionStatus.NOT_FOLLOWED.value,
})


# ---------- Public contract returned to routes ----------

class WorkoutEntry(BaseModel):
    status: str
    client_note: Optional[str] = None
    workout_plan_id: Optional[str] = None
    reported_at: Optional[datetime] = None


class NutritionEntry(BaseModel):
    compliance_status: Optional[str] = None
    client_note: Optional[str] = None
    meal_plan_id: Optional[str] = None
    reported_at: Optional[datetime] = None
    coach_note: Optional[str] = None
    coach_note_at: Optional[datetime] = None


class DayEntry(BaseModel):
    date: str
    day_state: DayState
    workout: Optional[WorkoutEntry] = None
    nutrition: Optional[NutritionEntry] = None
    flagged: bool = False


class RangeView(BaseModel):
    owner_id: int
    start: str
    end: str
    today: str
    days: list[DayEntry] = Field(default_factory=list)


# ---------- Internal helpers ----------

def _clean_note(note: Optional[str]) -> Optional[str]:
    trimmed = (note or "").strip()
    return trimmed[: settings.CLIENT_NOTE_MAX_LENGTH] or None


def _check_date(date: str) -> None:
    try:
        parse_date_key(date)
    except ValueError as e:
        raise InvalidDate(date=date) from e


def _ensure_reportable(owner_id: int, date: str, today: str) -> None:
    _check_date(date)
    if not is_reportable(date, today):
        logger.info("future_report_rejected", owner_id=owner_id, date=date, today=today)
        raise FutureDateReportError(date=date, today=today)


def _resolve_plan(chosen: Optional[str], assigned: list[str]) -> Optional[str]:
    """Chosen plan must be assigned; no choice falls back to the first assigned plan."""
    chosen = (chosen or "").strip()
    if not chosen:
        return assigned[0] if assigned else None
    if chosen not in assigned:
        raise PlanNotAssigned(plan_id=chosen)
    return chosen


def workout_entry(row: DailyLog) -> Optional[WorkoutEntry]:
    if not row.workout_status:
        return None
    return WorkoutEntry(
        status=row.workout_status,
        client_note=row.workout_client_note,
        workout_plan_id=row.workout_plan_id,
        reported_at=row.workout_reported_at,
    )


def nutrition_entry(row: DailyLog) -> Optional[NutritionEntry]:
    if not row.nutrition_status and not row.nutrition_coach_note:
        return None
    return NutritionEntry(
        compliance_status=row.nutrition_status,
        client_note=row.nutrition_client_note,
        meal_plan_id=row.meal_plan_id,
        reported_at=row.nutrition_reported_at,
        coach_note=row.nutrition_coach_note,
        coach_note_at=row.nutrition_coach_note_at,
    )


def needs_attention(row: DailyLog) -> bool:
    return (
        (row.workout_status or "").upper() in ATTENTION_WORKOUT
        or (row.nutrition_status or "").upper() in ATTENTION_NUTRITION
    )


# ---------- Ledger writes ----------

async def upsert_workout_log(
    db: AsyncSession,
    *,
    owner_id: int,
    date: str,
    status: WorkoutStatus,
    now: datetime,
    today: str,
    client_note: Optional[str] = None,
    workout_plan_id: Optional[str] = None,
) -> DailyLog:
    status_value = WorkoutStatus(status).value
    if status_value not in REPORTABLE_WORKOUT:
        raise StatusNotReportable(status=status_value)
    _ensure_reportable(owner_id, date, today)

    customer = await get_customer(db, owner_id)
    if customer is None:
        raise CustomerNotFound()
    plan_id = _resolve_plan(workout_plan_id, normalize_id_list(customer.assigned_workout_plan_ids))

    values: dict[str, Any] = {
        "workout_status": status_value,
        "workout_plan_id": plan_id,
        "workout_client_note": _clean_note(client_note),
        "workout_reported_at": now,
    }
    row = await upsert_daily_log(db, owner_id=owner_id, date=date, values=values, now=now)
    logger.info("daily_log_upserted", facet="workout", owner_id=owner_id, date=date,
                status=values["workout_status"])
    return row


async def upsert_nutrition_log(
    db: AsyncSession,
    *,
    owner_id: int,
    date: str,
    compliance_status: NutritionStatus,
    now: datetime,
    today: str,
    client_note: Optional[str] = None,
    meal_plan_id: Optional[str] = None,
) -> DailyLog:
    _ensure_reportable(owner_id, date, today)

    customer = await get_customer(db, owner_id)
    if customer is None:
        raise CustomerNotFound()
    plan_id = _resolve_plan(meal_plan_id, normalize_id_list(customer.assigned_meal_plan_ids))

    note = _clean_note(client_note)
    values: dict[str, Any] = {
        "nutrition_status": NutritionStatus(compliance_status).value,
        "meal_plan_id": plan_id,
        "nutrition_client_note": note,
        "nutrition_client_note_at": now if note else None,
        "nutrition_reported_at": now,
    }
    row = await upsert_daily_log(db, owner_id=owner_id, date=date, values=values, now=now)
    logger.info("daily_log_upserted", facet="nutrition", owner_id=owner_id, date=date,
                status=values["nutrition_status"])
    return row


async def set_flag(
    db: AsyncSession,
    *,
    owner_id: int,
    date: str,
    flagged: bool,
    now: datetime,
) -> DailyLog:
    """Coach marker on an existing day; does not create rows."""
    _check_date(date)
    row = await get_daily_log(db, owner_id, date)
    if row is None:
        raise LogNotFound(date=date)
    row = await set_flagged(db, row, flagged, now)
    logger.info("daily_log_flagged", owner_id=owner_id, date=date, flagged=flagged)
    return row


async def set_coach_note(
    db: AsyncSession,
    *,
    owner_id: int,
    date: str,
    note: Optional[str],
    now: datetime,
) -> DailyLog:
    """Coach comment on a nutrition day.

    Coaches may annotate any day, so there is no future gate, and the row is
    created if the client has not reported yet. A blank note clears both the
    note and its timestamp.
    """
    _check_date(date)
    if await get_customer(db, owner_id) is None:
        raise CustomerNotFound()

    cleaned = _clean_note(note)
    values: dict[str, Any] = {
        "nutrition_coach_note": cleaned,
        "nutrition_coach_note_at": now if cleaned else None,
    }
    row = await upsert_daily_log(db, owner_id=owner_id, date=date, values=values, now=now)
    logger.info("coach_note_set", owner_id=owner_id, date=date, cleared=cleaned is None)
    return row


# ---------- Range aggregation ----------

async def build_range(
    db: AsyncSession,
    owner_id: int,
    start: str,
    end: str,
    *,
    today: str,
) -> RangeView:
    """One entry per date in [start, end], whether or not a row exists.

    Future days are returned as stored; callers render them as placeholders.
    """
    try:
        if start > end:
            raise InvalidDateRange(start=start, end=end)
        span = span_days(start, end)
    except ValueError as e:
        raise InvalidDateRange(str(e)) from e
    if span > settings.MAX_RANGE_DAYS:
        raise InvalidDateRange(
            f"Range too long ({span} days, max {settings.MAX_RANGE_DAYS}).",
            start=start, end=end,
        )

    rows = await list_daily_logs(db, owner_id=owner_id, start_date=start, end_date=end)
    by_date = {row.date: row for row in rows}

    days: list[DayEntry] = []
    for key in iter_date_keys(start, end):
        row = by_date.get(key)
        if row is None:
            days.append(DayEntry(date=key, day_state=classify(key, today)))
            continue
        days.append(DayEntry(
            date=key,
            day_state=classify(key, today),
            workout=workout_entry(row),
            nutrition=nutrition_entry(row),
            flagged=bool(row.flagged) or needs_attention(row),
        ))

    logger.debug("daily_log_range_built", owner_id=owner_id, start=start, end=end,
                 stored=len(rows), days=len(days))
    return RangeView(owner_id=owner_id, start=start, end=end, today=today, days=days)
