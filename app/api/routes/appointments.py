# app/api/routes/appointments.py

from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now
from app.core.errors import AppointmentNotFound
from app.crud.appointment import get_appointment, list_appointments
from app.crud.business import get_business_timezone
from app.db.session import get_session
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentReschedule,
    AppointmentStatusUpdate,
    EligibilityOut,
    StatusOptionsOut,
)
from app.services.eligibility import (
    allowed_status_options,
    can_customer_book,
    create_appointment_guarded,
    is_appointment_past,
    reschedule_appointment,
    update_appointment_status,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/eligibility", response_model=EligibilityOut)
async def check_eligibility(
    business_id: int,
    customer_id: int,
    exclude_appointment_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    eligible = await can_customer_book(
        db, business_id, customer_id, now,
        exclude_appointment_id=exclude_appointment_id,
    )
    return {"business_id": business_id, "customer_id": customer_id, "eligible": eligible}


@router.post("", response_model=AppointmentOut, status_code=201)
async def book_appointment(
    payload: AppointmentCreate,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return await create_appointment_guarded(
        db,
        business_id=payload.business_id,
        customer_id=payload.customer_id,
        date=payload.date,
        start_time=payload.start_time,
        now=now,
        duration_min=payload.duration_min,
        notes=payload.notes,
    )


@router.get("", response_model=List[AppointmentOut])
async def get_appointments(
    business_id: int,
    customer_id: Optional[int] = None,
    start: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    end: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
):
    return await list_appointments(
        db,
        business_id=business_id,
        customer_id=customer_id,
        start_date=start,
        end_date=end,
        limit=limit,
    )


@router.patch("/{appointment_id}", response_model=AppointmentOut)
async def reschedule(
    appointment_id: int,
    payload: AppointmentReschedule,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return await reschedule_appointment(
        db, appointment_id, date=payload.date, start_time=payload.start_time, now=now,
    )


@router.patch("/{appointment_id}/status", response_model=AppointmentOut)
async def set_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    return await update_appointment_status(db, appointment_id, payload.status, now)


@router.get("/{appointment_id}/status-options", response_model=StatusOptionsOut)
async def status_options(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
):
    appt = await get_appointment(db, appointment_id)
    if appt is None:
        raise AppointmentNotFound()
    tz = await get_business_timezone(db, appt.business_id)
    return {
        "appointment_id": appt.id,
        "is_past": is_appointment_past(appt, now, tz),
        "options": allowed_status_options(appt, now, tz),
    }
