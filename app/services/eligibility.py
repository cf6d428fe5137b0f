# app/services/eligibility.py
"""
Booking eligibility under the "one upcoming appointment per customer" policy.

Appointments store business-local wall-clock strings, so "upcoming" is
decided by normalizing ``now`` into the business timezone and comparing
fixed-width ``YYYY-MM-DD`` / ``HH:MM`` keys.

``can_customer_book`` is a read-then-decide pre-flight check. The insert
path (``create_appointment_guarded``) repeats the count inside the write
transaction while holding a row lock on the customer, which is what actually
keeps two concurrent bookings from both landing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import normalize
from app.core.errors import (
    AppointmentNotFound,
    BookingLimitReached,
    CustomerNotFound,
    RetroStatusNotAllowed,
)
from app.core.logging import get_logger
from app.crud.appointment import add_appointment, count_upcoming_appointments, get_appointment
from app.crud.business import get_booking_policy, get_business_timezone
from app.crud.customer import lock_customer
from app.db.models.appointment import Appointment, AppointmentStatus, RETRO_STATUSES, TERMINAL_STATUSES

logger = get_logger(__name__)


async def can_customer_book(
    db: AsyncSession,
    business_id: int,
    customer_id: int,
    now: datetime,
    *,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    limit_one, tz = await get_booking_policy(db, business_id)
    if not limit_one:
        return True

    today, now_time = normalize(now, tz)
    count = await count_upcoming_appointments(
        db,
        business_id=business_id,
        customer_id=customer_id,
        today=today,
        now_time=now_time,
        exclude_appointment_id=exclude_appointment_id,
    )
    eligible = count == 0
    logger.info(
        "booking_eligibility_checked",
        business_id=business_id,
        customer_id=customer_id,
        today=today,
        now_time=now_time,
        upcoming=count,
        excluded=exclude_appointment_id,
        eligible=eligible,
    )
    return eligible


async def create_appointment_guarded(
    db: AsyncSession,
    *,
    business_id: int,
    customer_id: int,
    date: str,
    start_time: str,
    now: datetime,
    duration_min: int = 30,
    notes: Optional[str] = None,
) -> Appointment:
    """Insert an appointment, enforcing the booking limit inside the transaction."""
    try:
        customer = await lock_customer(db, business_id, customer_id)
        if customer is None:
            raise CustomerNotFound()

        if not await can_customer_book(db, business_id, customer_id, now):
            raise BookingLimitReached(customer_id=customer_id)

        appt = add_appointment(
            db,
            business_id=business_id,
            customer_id=customer_id,
            date=date,
            start_time=start_time,
            duration_min=duration_min,
            notes=notes,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(appt)
    logger.info("appointment_created", appointment_id=appt.id, business_id=business_id,
                customer_id=customer_id, date=date, start_time=start_time)
    return appt


async def reschedule_appointment(
    db: AsyncSession,
    appointment_id: int,
    *,
    date: str,
    start_time: str,
    now: datetime,
) -> Appointment:
    """Move an appointment; the appointment itself does not count against the limit."""
    appt = await get_appointment(db, appointment_id)
    if appt is None:
        raise AppointmentNotFound()

    try:
        await lock_customer(db, appt.business_id, appt.customer_id)
        eligible = await can_customer_book(
            db, appt.business_id, appt.customer_id, now,
            exclude_appointment_id=appt.id,
        )
        if not eligible:
            raise BookingLimitReached(customer_id=appt.customer_id)

        appt.date = date
        appt.start_time = start_time
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(appt)
    logger.info("appointment_rescheduled", appointment_id=appt.id, date=date, start_time=start_time)
    return appt


def is_appointment_past(appt: Appointment, now: datetime, tz: Optional[str]) -> bool:
    """Strictly before business-local now, at date+time granularity."""
    today, now_time = normalize(now, tz)
    return (appt.date, appt.start_time) < (today, now_time)


def allowed_status_options(appt: Appointment, now: datetime, tz: Optional[str]) -> list[str]:
    past = is_appointment_past(appt, now, tz)
    return [
        s.value for s in AppointmentStatus
        if past or s.value not in RETRO_STATUSES
    ]


async def update_appointment_status(
    db: AsyncSession,
    appointment_id: int,
    status: AppointmentStatus,
    now: datetime,
) -> Appointment:
    appt = await get_appointment(db, appointment_id)
    if appt is None:
        raise AppointmentNotFound()

    status_value = AppointmentStatus(status).value
    if status_value in RETRO_STATUSES:
        tz = await get_business_timezone(db, appt.business_id)
        if not is_appointment_past(appt, now, tz):
            logger.info("retro_status_rejected", appointment_id=appt.id, status=status_value)
            raise RetroStatusNotAllowed(appointment_id=appt.id)

    reactivating = appt.status in TERMINAL_STATUSES and status_value not in TERMINAL_STATUSES
    try:
        if reactivating:
            # A revived appointment counts as upcoming again, same as a new booking
            await lock_customer(db, appt.business_id, appt.customer_id)
            eligible = await can_customer_book(
                db, appt.business_id, appt.customer_id, now,
                exclude_appointment_id=appt.id,
            )
            if not eligible:
                raise BookingLimitReached(customer_id=appt.customer_id)

        appt.status = status_value
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(appt)
    logger.info("appointment_status_updated", appointment_id=appt.id, status=status_value)
    return appt
