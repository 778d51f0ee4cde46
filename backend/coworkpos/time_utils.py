from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight UTC of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_iso_date(day: Optional[date]) -> Optional[str]:
    if day is None:
        return None
    return day.isoformat()


def as_day(value: date | datetime) -> date:
    """Calendar day (UTC) a datetime falls on; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_day(value: Optional[str]) -> Optional[date]:
    """Accepts "YYYY-MM-DD" or any ISO-8601 datetime; returns its UTC day."""
    dt = parse_iso_datetime(value)
    return dt.date() if dt is not None else None


def start_of_day(value: date | datetime) -> datetime:
    return datetime.combine(as_day(value), time.min)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) datetime range covering one UTC day."""
    start = start_of_day(day)
    return start, start + timedelta(days=1)


def range_bounds(start_day: date, end_day: date) -> tuple[datetime, datetime]:
    """Half-open datetime range covering start_day through end_day inclusive."""
    return start_of_day(start_day), start_of_day(end_day) + timedelta(days=1)


def add_months(value: datetime, months: int) -> datetime:
    """Same day-of-month N months later, clamped to the month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def iter_days(start_day: date, end_day: date) -> Iterator[date]:
    current = start_day
    while current <= end_day:
        yield current
        current += timedelta(days=1)


def iter_months(start_day: date, end_day: date) -> Iterator[date]:
    """First day of every month that intersects [start_day, end_day]."""
    current = month_start(start_day)
    while current <= end_day:
        yield current
        current = add_months(datetime.combine(current, time.min), 1).date()
