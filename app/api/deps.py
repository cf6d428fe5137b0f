# app/api/deps.py
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow, zone_name
from app.core.config import settings
from app.crud.business import get_business_timezone
from app.crud.customer import get_customer


def get_now() -> datetime:
    """Request clock; overridden in tests to pin "now"."""
    return utcnow()


async def viewer_timezone(db: AsyncSession, customer_id: int, tz: Optional[str] = None) -> str:
    """Explicit viewer zone, else the customer's business zone, else the default."""
    if tz and tz.strip():
        return zone_name(tz)
    customer = await get_customer(db, customer_id)
    if customer is not None:
        business_tz = await get_business_timezone(db, customer.business_id)
        if business_tz and business_tz.strip():
            return zone_name(business_tz)
    return zone_name(settings.DEFAULT_TIMEZONE)
