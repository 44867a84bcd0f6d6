"""
Calendar date helpers.

All dates in the scheduler are fixed-width, zero-padded, timezone-naive
'YYYY-MM-DD' strings. Arithmetic goes through datetime.date and is
formatted back immediately, so comparisons elsewhere can stay lexicographic.
"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta, MO

from src.models.base import ISO_DATE_PATTERN
from src.services.exceptions import DateValidationError

WEEK_LENGTH = 7


def parse_iso_date(value: str) -> date:
    """
    Parse a strict YYYY-MM-DD string.

    Raises:
        DateValidationError: If the value is not a valid fixed-width date
    """
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise DateValidationError(f"Invalid date {value!r}: expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise DateValidationError(f"Invalid date {value!r}: {e}", original_error=e)


def normalize_date(value: str) -> str:
    """
    Normalize client input to YYYY-MM-DD.

    Accepts full ISO timestamps by keeping the date part, as clients often
    send '2026-02-03T00:00:00.000Z'.
    """
    candidate = str(value).strip()[:10]
    parse_iso_date(candidate)
    return candidate


def add_days(value: str, days: int) -> str:
    """Add a number of days to a YYYY-MM-DD string."""
    return (parse_iso_date(value) + relativedelta(days=days)).isoformat()


def is_monday(value: str) -> bool:
    return parse_iso_date(value).weekday() == 0


def monday_of_week(value: str) -> str:
    """Monday of the ISO week containing the given date."""
    return (parse_iso_date(value) + relativedelta(weekday=MO(-1))).isoformat()


def today(tz_name: Optional[str] = None) -> str:
    """Today's date in the given IANA timezone (UTC when omitted)."""
    tz = ZoneInfo(tz_name) if tz_name else ZoneInfo("UTC")
    return datetime.now(tz).date().isoformat()


def next_monday(reference: Optional[str] = None, tz_name: Optional[str] = None) -> str:
    """
    Monday of the week after the reference date.

    On a Sunday evening this is tomorrow; on a Monday it is a week away.
    """
    ref = reference or today(tz_name)
    return add_days(monday_of_week(ref), WEEK_LENGTH)


def week_dates(week_start: str) -> list[str]:
    """The seven dates of a week, Monday first."""
    return [add_days(week_start, i) for i in range(WEEK_LENGTH)]


def month_bounds(value: str) -> tuple[str, str]:
    """First and last day of the month containing the date."""
    first = parse_iso_date(value).replace(day=1)
    last = first + relativedelta(months=1, days=-1)
    return first.isoformat(), last.isoformat()


def format_day_label(value: str) -> str:
    """E.g. 'Tuesday, 3 Feb'."""
    d = parse_iso_date(value)
    return f"{d.strftime('%A')}, {d.day} {d.strftime('%b')}"


def format_week_label(week_start: str, week_end: Optional[str] = None) -> str:
    """E.g. '2 Feb - 8 Feb 2026'."""
    start = parse_iso_date(week_start)
    end = parse_iso_date(week_end) if week_end else start + relativedelta(days=WEEK_LENGTH - 1)
    return f"{start.day} {start.strftime('%b')} - {end.day} {end.strftime('%b')} {end.year}"
