"""
dates.py - calendar arithmetic on plain UTC dates

All functions work on datetime.date (no time-of-day) so there is no
time-zone drift when stepping recurring rules forward. Stored dates are ISO
"YYYY-MM-DD" strings; parse_date/format_date convert at the edges.
"""

import calendar
import datetime


def utc_today() -> datetime.date:
    return datetime.datetime.now(datetime.timezone.utc).date()


def parse_date(value) -> datetime.date:
    """Parse an ISO date string. Raises ValueError on malformed input."""
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value or "").strip()[:10])


def format_date(d: datetime.date) -> str:
    return d.isoformat()


def _clamped(year: int, month: int, day: int) -> datetime.date:
    last = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, min(day, last))


def add_days(d: datetime.date, n: int) -> datetime.date:
    return d + datetime.timedelta(days=n)


def add_one_month(d: datetime.date) -> datetime.date:
    """Next month, same day, clamped to that month's last day."""
    year, month = d.year, d.month + 1
    if month > 12:
        year, month = year + 1, 1
    return _clamped(year, month, d.day)


def add_one_year(d: datetime.date) -> datetime.date:
    """Same month next year; Feb 29 becomes Feb 28 in non-leap years."""
    return _clamped(d.year + 1, d.month, d.day)


def advance_by_frequency(d: datetime.date, frequency: str) -> datetime.date:
    frequency = str(getattr(frequency, "value", frequency))
    if frequency == "weekly":
        return add_days(d, 7)
    if frequency == "yearly":
        return add_one_year(d)
    return add_one_month(d)


def iso_week_key(d: datetime.date) -> str:
    """ISO-8601 week key "YYYY-Www"; the year is the one owning the week's Thursday."""
    iso_year, week, _ = d.isocalendar()
    return f"{iso_year}-W{week:02d}"


def period_key(date_str: str, granularity: str) -> str:
    granularity = str(getattr(granularity, "value", granularity))
    if granularity == "weekly":
        return iso_week_key(parse_date(date_str))
    if granularity == "yearly":
        return date_str[:4]
    return date_str[:7]


def current_month_key(today: datetime.date) -> str:
    return today.strftime("%Y-%m")
