from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo
import math
import uuid
import re

UK_TZ = ZoneInfo('Europe/London')


def utc_now():
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_uk_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(value).astimezone(UK_TZ)


def parse_iso_datetime(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    raw = str(value).strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    return as_utc(datetime.fromisoformat(raw))


def parse_iso_date(value) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def parse_week_start(value) -> date:
    """Parse a YYYY-MM-DD string that must fall on a Monday."""
    week_start = parse_iso_date(value)
    if week_start is None:
        raise ValueError('week_start is required')
    if week_start.weekday() != 0:
        raise ValueError('week_start must be a Monday')
    return week_start


def week_bounds(week_start: date):
    """
    UTC datetime range [start, end) covering the seven UK-local days of the
    week, so entries land in the week of their UK clock-in date.
    """
    end_day = week_start + timedelta(days=7)
    start = datetime(week_start.year, week_start.month, week_start.day, tzinfo=UK_TZ)
    end = datetime(end_day.year, end_day.month, end_day.day, tzinfo=UK_TZ)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def week_number(value: date) -> int:
    """Week of year with Monday-start weeks, week 1 being the week holding 1 January."""
    def week_year_start(year):
        jan1 = date(year, 1, 1)
        return jan1 - timedelta(days=jan1.weekday())

    next_start = week_year_start(value.year + 1)
    start = next_start if value >= next_start else week_year_start(value.year)
    return (value - start).days // 7 + 1


def hours_between(start: datetime, end: datetime) -> float:
    return round((as_utc(end) - as_utc(start)).total_seconds() / 3600, 2)


def round_up_tenth(hours: float) -> float:
    return math.ceil(round(hours * 10, 6)) / 10


def normalize_email(email: Optional[str]) -> str:
    if not email:
        return ''
    return email.strip().lower()


def append_note(existing: Optional[str], note: str) -> str:
    if existing:
        return f"{existing} | {note}"
    return note


EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email and EMAIL_RE.match(email.strip()))


def to_uuid(value) -> Optional[uuid.UUID]:
    """Coerce a request value to UUID; raises ValueError on malformed input."""
    if value is None or value == '':
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
