"""Calendar date arithmetic for eventcal.

Pure functions over ``datetime.date`` and ``datetime.datetime`` values. Every
value is a local wall-clock reading; nothing here converts between zones.

Month arithmetic deliberately rolls a day-of-month that does not exist in the
target month forward into the next month instead of clamping it:

    >>> add_months(date(2023, 1, 31), 1)
    datetime.date(2023, 3, 3)
    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 3, 2)

Recurring monthly series chain through this rule, so it must stay exact.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import TypeVar

DateLike = TypeVar("DateLike", date, datetime)

# Python weekday numbers (Monday=0) used for the first grid column.
MONDAY = 0
SUNDAY = 6

DATE_PATTERN = "YYYY-MM-DD"
DATETIME_PATTERN = "YYYY-MM-DDTHH:mm"


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def format_date(value: date, pattern: str = DATE_PATTERN) -> str:
    """Render a date with the tokens YYYY, MM, DD, HH and mm.

    MM, DD, HH and mm are zero-padded to two digits. Plain dates render
    HH and mm as ``00``.

    Examples:
        >>> format_date(date(2024, 5, 1))
        '2024-05-01'
        >>> format_date(datetime(2024, 5, 1, 9, 5), "YYYY-MM-DDTHH:mm")
        '2024-05-01T09:05'
    """
    hours = value.hour if isinstance(value, datetime) else 0
    minutes = value.minute if isinstance(value, datetime) else 0
    return (
        pattern.replace("YYYY", f"{value.year:04d}")
        .replace("MM", f"{value.month:02d}")
        .replace("DD", f"{value.day:02d}")
        .replace("HH", f"{hours:02d}")
        .replace("mm", f"{minutes:02d}")
    )


def parse_date(text: str) -> date:
    """Parse a canonical ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the text is not exactly a valid YYYY-MM-DD date
    """
    if not isinstance(text, str) or len(text) != 10 or text[4] != "-" or text[7] != "-":
        raise ValueError(f"Expected YYYY-MM-DD, got {text!r}")
    return datetime.strptime(text, "%Y-%m-%d").date()


def parse_time(text: str) -> time:
    """Parse a canonical ``HH:mm`` string.

    Raises:
        ValueError: If the text is not exactly a valid 24-hour HH:mm time
    """
    if not isinstance(text, str) or len(text) != 5 or text[2] != ":":
        raise ValueError(f"Expected HH:mm, got {text!r}")
    return datetime.strptime(text, "%H:%M").time()


def is_same_day(a: date, b: date) -> bool:
    """Return True when both values fall on the same calendar day."""
    return _as_date(a) == _as_date(b)


def add_days(value: DateLike, days: int) -> DateLike:
    return value + timedelta(days=days)


def add_weeks(value: DateLike, weeks: int) -> DateLike:
    return add_days(value, weeks * 7)


def add_months(value: DateLike, months: int) -> DateLike:
    """Shift a date by whole months, rolling overflowing days forward.

    The target month is found by adding ``months`` to the month index and
    carrying into the year. If the original day-of-month is past the end of
    the target month, the excess days continue into the following month(s).
    Time-of-day is preserved for datetimes.
    """
    year, month_index = divmod(value.year * 12 + (value.month - 1) + months, 12)
    first = value.replace(year=year, month=month_index + 1, day=1)
    return first + timedelta(days=value.day - 1)


def days_in_month(value: date) -> int:
    """Number of days in the month containing ``value`` (leap-year aware)."""
    return calendar.monthrange(value.year, value.month)[1]


def start_of_month(value: date) -> datetime:
    """First instant (00:00:00) of the month containing ``value``."""
    return datetime(value.year, value.month, 1)


def end_of_month(value: date) -> datetime:
    """Last instant (23:59:59.999999) of the month containing ``value``."""
    return datetime.combine(
        date(value.year, value.month, days_in_month(value)), time.max
    )


def weekday_index(value: date, week_starts_on: int = SUNDAY) -> int:
    """Column of ``value`` in a week that starts on ``week_starts_on``.

    Args:
        value: Any date
        week_starts_on: Python weekday number (Monday=0) of column 0

    Returns:
        0 for the first day of the week up to 6 for the last
    """
    return (value.weekday() - week_starts_on) % 7


def first_weekday_of_month(value: date, week_starts_on: int = SUNDAY) -> int:
    """Column index of the 1st of the month containing ``value``."""
    return weekday_index(start_of_month(value), week_starts_on)
