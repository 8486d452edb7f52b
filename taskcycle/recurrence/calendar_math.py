"""Calendar arithmetic for recurring tasks and deadline checks.

All functions work on `datetime.date` values (no time of day). "Today" is taken in a
fixed UTC offset so results never depend on the host timezone.

Month and year arithmetic clamps to the last valid day of the target month:
Jan 31 + 1 month is Feb 28 (Feb 29 in leap years) and Feb 29 + 1 year is Feb 28.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from taskcycle.models.constants import DATE_FORMAT, LOCAL_UTC_OFFSET_HOURS

LOCAL_TZ = timezone(timedelta(hours=LOCAL_UTC_OFFSET_HOURS))

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today(offset_days: int = 0, now: Optional[datetime] = None) -> date:
    """Local calendar date for `now` shifted by `offset_days`.

    Args:
        offset_days: Days to add (negative for the past)
        now: Reference instant; naive values are treated as UTC. Defaults to the current time.

    Returns:
        Calendar date in the engine's fixed UTC offset
    """
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(LOCAL_TZ).date() + timedelta(days=offset_days)


def format_date(d: date) -> str:
    """Render a date as YYYY-MM-DD."""
    return d.strftime(DATE_FORMAT)


def js_weekday(d: date) -> int:
    """Weekday number with Sunday=0 ... Saturday=6."""
    # Python weekday: Monday=0 ... Sunday=6
    return (d.weekday() + 1) % 7


def next_weekday(from_date: date, target_weekday: int, extra_weeks: int = 0) -> date:
    """Next date strictly after `from_date` falling on `target_weekday`, plus extra weeks.

    If `from_date` already is the target weekday the following week's occurrence is
    used, so completing a Wednesday task schedules next Wednesday rather than today.
    """
    if not 0 <= target_weekday <= 6:
        raise ValueError(f"target_weekday must be 0-6 (Sunday=0), got {target_weekday}")
    if extra_weeks < 0:
        raise ValueError(f"extra_weeks must be >= 0, got {extra_weeks}")

    days_ahead = (target_weekday - js_weekday(from_date)) % 7
    if days_ahead == 0:
        days_ahead = 7
    return from_date + timedelta(days=days_ahead + 7 * extra_weeks)


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def add_months(d: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    return d + relativedelta(months=months)


def add_years(d: date, years: int) -> date:
    """Add calendar years, clamping Feb 29 to Feb 28 in non-leap years."""
    return d + relativedelta(years=years)
