# utils/dates.py
from __future__ import annotations

import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from dateutil import parser

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS = timedelta(milliseconds=1)

DueLike = Union[None, int, float, str, date, datetime]


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(ms: Optional[int]) -> Optional[datetime]:
    """Epoch milliseconds -> aware UTC datetime (exact, no float rounding)."""
    if ms is None:
        return None
    return EPOCH + timedelta(milliseconds=int(ms))


def to_epoch_ms(dt: Optional[datetime]) -> Optional[int]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        # SQLite hands stored values back without an offset; they are UTC
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // _MS


def coerce_due_date(value: DueLike) -> Optional[int]:
    """
    Accept whatever a form hands us for a due date and return epoch ms.
    Dates without a time are taken as midnight UTC; "" means no deadline.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("due date cannot be a bool")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return to_epoch_ms(value)
    if isinstance(value, date):
        return to_epoch_ms(datetime(value.year, value.month, value.day))
    s = str(value).strip()
    if not s:
        return None
    return to_epoch_ms(parser.parse(s))


def format_due(ms: Optional[int]) -> str:
    """Short label like 'Mar 4, 09:30' (UTC)."""
    dt = to_datetime(ms)
    if dt is None:
        return ""
    return f"{dt.strftime('%b')} {dt.day}, {dt.strftime('%H:%M')}"
