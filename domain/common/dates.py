"""Date helpers shared by the billing domain. Nothing here reads the clock."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure the datetime is UTC (naive values are taken as UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_days(dt: datetime, days: int) -> datetime:
    return ensure_utc(dt) + timedelta(days=days)


def ceil_days(delta: timedelta) -> int:
    """Whole days covering `delta`, rounding partial days up."""
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def start_of_day(dt: datetime) -> datetime:
    return ensure_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    return ensure_utc(dt).replace(hour=23, minute=59, second=59, microsecond=999999)
