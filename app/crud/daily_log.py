# app/crud/daily_log.py

from __future__ import annotations
from datetime import datetime
from typing import Any, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.db.models.daily_log import DailyLog


async def get_daily_log(db: AsyncSession, owner_id: int, date: str) -> Optional[DailyLog]:
    stmt = sa.select(DailyLog).where(DailyLog.owner_id == owner_id, DailyLog.date == date)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def _apply(db: AsyncSession, owner_id: int, date: str, values: dict[str, Any], now: datetime) -> DailyLog:
    row = await get_daily_log(db, owner_id, date)
    if row is None:
        row = DailyLog(owner_id=owner_id, date=date, created_at=now, updated_at=now, **values)
        db.add(row)
    else:
        for k, v in values.items():
            setattr(row, k, v)
        row.updated_at = now
    await db.commit()
    await db.refresh(row)
    return row


async def upsert_daily_log(
    db: AsyncSession,
    *,
    owner_id: int,
    date: str,
    values: dict[str, Any],
    now: datetime,
) -> DailyLog:
    """Replace the given columns on the (owner_id, date) row, creating it if needed.

    Only the columns in ``values`` are touched, so a workout write leaves the
    nutrition facet alone and vice versa.
    """
    try:
        return await _apply(db, owner_id, date, values, now)
    except IntegrityError:
        # A concurrent first write for the same day won the insert; replay as an update
        await db.rollback()
        return await _apply(db, owner_id, date, values, now)


async def set_flagged(db: AsyncSession, row: DailyLog, flagged: bool, now: datetime) -> DailyLog:
    row.flagged = flagged
    row.updated_at = now
    await db.commit()
    await db.refresh(row)
    return row


async def list_daily_logs(
    db: AsyncSession,
    *,
    owner_id: int,
    start_date: str,
    end_date: str,
) -> Sequence[DailyLog]:
    stmt = (
        sa.select(DailyLog)
        .where(
            DailyLog.owner_id == owner_id,
            DailyLog.date >= start_date,
            DailyLog.date <= end_date,
        )
        .order_by(DailyLog.date.asc())
    )
    res = await db.execute(stmt)
    return res.scalars().all()
