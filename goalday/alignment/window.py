"""Calendar day / week windows in the fixed service offset.

All windows are half-open [start, end) and expressed in UTC for querying.
The offset is a single service-wide value, not a per-user timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from goalday.alignment.errors import InvalidDateError
from goalday.config import settings


@dataclass(frozen=True, slots=True)
class DayWindow:
    day: date
    start: datetime
    end: datetime


def service_tz(offset_minutes: int | None = None) -> timezone:
    minutes = settings.day_offset_minutes if offset_minutes is None else offset_minutes
    return timezone(timedelta(minutes=minutes))


def local_day(value: date | datetime | None = None, offset_minutes: int | None = None) -> date:
    """Calendar date of `value` in the service offset.

    A bare date is taken as-is. Naive datetimes are treated as UTC.
    """
    if value is None:
        value = datetime.now(timezone.utc)
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(service_tz(offset_minutes)).date()


def _range_utc(start: date, end_exclusive: date, tz: timezone) -> tuple[datetime, datetime]:
    s = datetime.combine(start, time.min, tzinfo=tz)
    e = datetime.combine(end_exclusive, time.min, tzinfo=tz)
    return s.astimezone(timezone.utc), e.astimezone(timezone.utc)


def day_window(value: date | datetime | None = None, offset_minutes: int | None = None) -> DayWindow:
    day = local_day(value, offset_minutes)
    start, end = _range_utc(day, day + timedelta(days=1), service_tz(offset_minutes))
    return DayWindow(day=day, start=start, end=end)


def week_start(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_window(value: date | datetime | None = None, offset_minutes: int | None = None) -> DayWindow:
    """Sunday–Saturday window containing `value`; `day` is the Sunday."""
    first = week_start(local_day(value, offset_minutes))
    start, end = _range_utc(first, first + timedelta(days=7), service_tz(offset_minutes))
    return DayWindow(day=first, start=start, end=end)


def parse_when(value: str | None) -> date | datetime | None:
    """Parse a query parameter into a date or datetime.

    Accepts YYYY-MM-DD or an ISO-8601 datetime (``Z`` suffix allowed).
    Empty input means "now". Anything else raises InvalidDateError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InvalidDateError(value)
