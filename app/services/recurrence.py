"""
Expansion of a gig into a weekly or monthly series of independent occurrences.

Occurrences are stepped on the local wall clock of the business timezone so a
Friday 8pm gig stays at 8pm across DST changes.
"""
import calendar
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytz


FREQUENCIES = ("weekly", "monthly")


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def occurrences(
    start: datetime,
    end: datetime,
    frequency: str,
    count: int,
    tz_name: Optional[str] = None,
) -> List[Tuple[datetime, datetime]]:
    """
    UTC start/end pairs for each occurrence; the first is the submitted range
    and every occurrence keeps the original duration.
    """
    if frequency not in FREQUENCIES:
        raise ValueError(f"Unsupported frequency: {frequency}")
    if count < 1:
        raise ValueError("count must be at least 1")
    tz = pytz.timezone(tz_name) if tz_name else pytz.utc
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    duration = end - start
    local_wall = start.astimezone(tz).replace(tzinfo=None)

    result = []
    for i in range(count):
        if frequency == "weekly":
            wall = local_wall + timedelta(weeks=i)
        else:
            wall = add_months(local_wall, i)
        occ_start = tz.localize(wall).astimezone(timezone.utc)
        result.append((occ_start, occ_start + duration))
    return result
