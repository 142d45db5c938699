from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional

from ..core.exceptions import ValidationError

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_clock_time(value: str, field_name: str = "time") -> time:
    """Parse a 24-hour ``HH:MM`` or ``HH:MM:SS`` string.

    Raises ValidationError on anything else; callers never get a silent default.
    """
    m = _TIME_RE.match((value or "").strip())
    if not m:
        raise ValidationError(f"{field_name} must be HH:MM or HH:MM:SS (24-hour)")
    return time(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))


def combine(day: Optional[date | str], clock: Optional[time | str], field_name: str = "time") -> Optional[datetime]:
    if day is None or clock is None or day == "" or clock == "":
        return None
    if isinstance(day, str):
        try:
            day = parse_iso_date(day)
        except ValueError:
            raise ValidationError(f"{field_name} date must be YYYY-MM-DD")
    if isinstance(clock, str):
        clock = parse_clock_time(clock, field_name)
    return datetime.combine(day, clock)


def span_hours(start: time, end: time) -> float:
    """Hours between two clock times; an end before the start wraps to the next day."""
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    if end_minutes < start_minutes:
        end_minutes += 24 * 60
    return round((end_minutes - start_minutes) / 60, 2)


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
