# app/core/calendar.py
from __future__ import annotations

import calendar as _cal
import re
from datetime import date, timedelta
from enum import Enum
from typing import Iterator

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# week_starts_on follows the JS convention the clients send: 0=Sun, 1=Mon
SUNDAY = 0
MONDAY = 1


class DayState(str, Enum):
    PAST = "past"
    TODAY = "today"
    FUTURE = "future"


def classify(date_key: str, today_key: str) -> DayState:
    # Fixed-width YYYY-MM-DD keys sort lexicographically in calendar order.
    if date_key < today_key:
        return DayState.PAST
    if date_key > today_key:
        return DayState.FUTURE
    return DayState.TODAY


def is_reportable(date_key: str, today_key: str) -> bool:
    return classify(date_key, today_key) is not DayState.FUTURE


def parse_date_key(key: str) -> date:
    if not isinstance(key, str) or not DATE_KEY_RE.match(key):
        raise ValueError("Invalid date (expected YYYY-MM-DD)")
    return date.fromisoformat(key)


def to_date_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def iter_date_keys(start_key: str, end_key: str) -> Iterator[str]:
    """Every date key from start to end, inclusive. Empty when start > end."""
    cursor = parse_date_key(start_key)
    end = parse_date_key(end_key)
    while cursor <= end:
        yield to_date_key(cursor)
        cursor += timedelta(days=1)


def span_days(start_key: str, end_key: str) -> int:
    return (parse_date_key(end_key) - parse_date_key(start_key)).days + 1


def week_window(anchor_key: str, week_starts_on: int = MONDAY) -> tuple[str, str]:
    if week_starts_on not in (SUNDAY, MONDAY):
        raise ValueError("week_starts_on must be 0 (Sunday) or 1 (Monday)")
    anchor = parse_date_key(anchor_key)
    # date.weekday(): 0=Mon .. 6=Sun
    offset = anchor.weekday() if week_starts_on == MONDAY else (anchor.weekday() + 1) % 7
    start = anchor - timedelta(days=offset)
    return to_date_key(start), to_date_key(start + timedelta(days=6))


def month_window(anchor_key: str) -> tuple[str, str]:
    anchor = parse_date_key(anchor_key)
    last_day = _cal.monthrange(anchor.year, anchor.month)[1]
    return to_date_key(anchor.replace(day=1)), to_date_key(anchor.replace(day=last_day))
