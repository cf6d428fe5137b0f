# app/core/clock.py
"""
Business-local wall clock.

Business timezones are free text typed into settings, so every lookup here
degrades to UTC instead of raising.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.logging import get_logger

UTC = ZoneInfo("UTC")

logger = get_logger(__name__)


class LocalClock(NamedTuple):
    date: str   # YYYY-MM-DD
    time: str   # HH:MM (24h) or "" when unavailable


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    tz = str(name or "UTC").strip() or "UTC"
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.debug("timezone_fallback", requested=tz[:64], fallback="UTC")
        return UTC


def zone_name(name: Optional[str]) -> str:
    """Canonical key of the zone actually used for ``name``."""
    return resolve_zone(name).key


def normalize(instant: datetime, tz: Optional[str]) -> LocalClock:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)

    try:
        local = instant.astimezone(resolve_zone(tz))
    except (OverflowError, ValueError):
        local = instant.astimezone(UTC)

    return LocalClock(
        f"{local.year:04d}-{local.month:02d}-{local.day:02d}",
        f"{local.hour:02d}:{local.minute:02d}",
    )


def local_date_key(instant: datetime, tz: Optional[str]) -> str:
    return normalize(instant, tz).date


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
