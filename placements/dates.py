from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pandas as pd

DAY_MS = 24 * 60 * 60 * 1000
EPOCH = datetime(1970, 1, 1)

# Whole days inside the span a nanosecond pandas column can hold.
MIN_FRAME_DATE = datetime(1677, 9, 22)
MAX_FRAME_DATE = datetime(2262, 4, 11)

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are read as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return int((value - EPOCH) // timedelta(milliseconds=1))


def in_frame_range(value: datetime) -> bool:
    return MIN_FRAME_DATE <= value < MAX_FRAME_DATE


def from_epoch_ms(ms: int) -> datetime:
    return pd.Timestamp(ms, unit="ms").to_pydatetime()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(value: datetime) -> datetime:
    """Midnight of the ISO week's Monday."""
    return start_of_day(value) - timedelta(days=value.weekday())


def ymd_key(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def short_label(value: datetime) -> str:
    return f"{MONTH_LABELS[value.month - 1]} {value.day}"


def format_long_date(value: Optional[datetime], fallback: str = "No dated records") -> str:
    if value is None:
        return fallback
    return f"{MONTH_LABELS[value.month - 1]} {value.day}, {value.year}"


def trailing_weeks(anchor: datetime, count: int) -> List[datetime]:
    last = start_of_week(anchor)
    return [last - timedelta(weeks=count - 1 - i) for i in range(count)]


def trailing_months(anchor: datetime, count: int) -> List[Tuple[int, int]]:
    """(year, month) pairs for ``count`` calendar months ending with the anchor's month."""
    out: List[Tuple[int, int]] = []
    for offset in range(count - 1, -1, -1):
        total = anchor.year * 12 + (anchor.month - 1) - offset
        out.append((total // 12, total % 12 + 1))
    return out


def month_label(year: int, month: int) -> str:
    return f"{MONTH_LABELS[month - 1]} '{str(year)[-2:]}"
