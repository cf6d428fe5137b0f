# app/crud/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.appointment import Appointment, AppointmentStatus, TERMINAL_STATUSES


def upcoming_filter(
    *,
    business_id: int,
    customer_id: int,
    today: str,
    now_time: str,
    exclude_appointment_id: Optional[int] = None,
):
    """WHERE clause for a customer's non-terminal appointments strictly after (today, now_time)."""
    clauses = [
        Appointment.business_id == business_id,
        Appointment.customer_id == customer_id,
        Appointment.status.not_in(TERMINAL_STATUSES),
        sa.or_(
            Appointment.date > today,
            sa.and_(Appointment.date == today, Appointment.start_time > now_time),
        ),
    ]
    if exclude_appointment_id is not None:
        clauses.append(Appointment.id != exclude_appointment_id)
    return sa.and_(*clauses)


async def count_upcoming_appointments(
    db: AsyncSession,
    *,
    business_id: int,
    customer_id: int,
    today: str,
    now_time: str,
    exclude_appointment_id: Optional[int] = None,
) -> int:
    stmt = sa.select(sa.func.count()).select_from(Appointment).where(
        upcoming_filter(
            business_id=business_id,
            customer_id=customer_id,
            today=today,
            now_time=now_time,
            exclude_appointment_id=exclude_appointment_id,
        )
    )
    res = await db.execute(stmt)
    return int(res.scalar_one())


async def get_appointment(db: AsyncSession, appointment_id: int) -> Optional[Appointment]:
    return await db.get(Appointment, appointment_id)


def add_appointment(
    db: AsyncSession,
    *,
    business_id: int,
    customer_id: int,
    date: str,
    start_time: str,
    duration_min: int = 30,
    status: str = AppointmentStatus.SCHEDULED.value,
    notes: Optional[str] = None,
) -> Appointment:
    """Stage a new appointment on the session; the caller owns the commit."""
    now = datetime.now(timezone.utc)
    appt = Appointment(
        business_id=business_id,
        customer_id=customer_id,
        date=date,
        start_time=start_time,
        duration_min=duration_min,
        status=status,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    db.add(appt)
    return appt


async def list_appointments(
    db: AsyncSession,
    *,
    business_id: int,
    customer_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = 100,
) -> Sequence[Appointment]:
    q = sa.select(Appointment).where(Appointment.business_id == business_id)
    if customer_id is not None:
        q = q.where(Appointment.customer_id == customer_id)
    if start_date is not None:
        q = q.where(Appointment.date >= start_date)
    if end_date is not None:
        q = q.where(Appointment.date <= end_date)
    q = q.order_by(Appointment.date.asc(), Appointment.start_time.asc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()
