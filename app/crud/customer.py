# app/crud/customer.py
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.customer import Customer


async def get_customer(db: AsyncSession, customer_id: int) -> Optional[Customer]:
    return await db.get(Customer, customer_id)


async def lock_customer(db: AsyncSession, business_id: int, customer_id: int) -> Optional[Customer]:
    """SELECT ... FOR UPDATE on the customer row; serializes bookings per customer."""
    stmt = (
        sa.select(Customer)
        .where(Customer.id == customer_id, Customer.business_id == business_id)
        .with_for_update()
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


def normalize_id_list(values) -> list[str]:
    """Trimmed, de-duplicated plan ids in their original order."""
    merged = [str(v or "").strip() for v in (values or [])]
    out: list[str] = []
    for v in merged:
        if v and v != "none" and v not in out:
            out.append(v)
    return out
