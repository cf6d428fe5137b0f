# app/crud/business.py
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.business import Business


async def get_booking_policy(db: AsyncSession, business_id: int) -> tuple[bool, Optional[str]]:
    """(limit_customer_to_one_upcoming_appointment, timezone) for a business.

    Reads only the two columns the eligibility check needs. A missing business
    reads as "no limit".
    """
    stmt = sa.select(
        Business.limit_customer_to_one_upcoming_appointment,
        Business.timezone,
    ).where(Business.id == business_id)
    row = (await db.execute(stmt)).one_or_none()
    if row is None:
        return False, None
    return bool(row[0]), row[1]


async def get_business_timezone(db: AsyncSession, business_id: int) -> Optional[str]:
    stmt = sa.select(Business.timezone).where(Business.id == business_id)
    return (await db.execute(stmt)).scalar_one_or_none()
