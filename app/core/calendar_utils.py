"""Calendar utilities.

All functions work on ``datetime.date`` values that are already expressed in
the tenant's local zone. ``today`` is the only place a wall clock is read.
Weekdays are numbered Sunday=0 through Saturday=6, which is how clients send
recurrence weekdays.
"""

from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta, tzinfo

from dateutil.relativedelta import relativedelta

DATE_FORMAT = "%Y-%m-%d"


def today(tz: tzinfo) -> date:
    """Return the current calendar date in the given zone."""
    return datetime.now(tz).date()


def month_bounds(day: date) -> tuple[date, date]:
    """Half-open ``[first_day, first_day_of_next_month)`` range containing ``day``."""
    first = day.replace(day=1)
    return first, first + relativedelta(months=1)


def next_month_start(day: date) -> date:
    """First day of the month after ``day``."""
    return month_bounds(day)[1]


def weekday_index(day: date) -> int:
    """Weekday with Sunday=0 ... Saturday=6."""
    return day.isoweekday() % 7


def week_bounds(day: date) -> tuple[date, date]:
    """Sunday and Saturday of the week containing ``day`` (inclusive)."""
    start = day - timedelta(days=weekday_index(day))
    return start, start + timedelta(days=6)


def add_months(day: date, months: int, day_of_month: int | None = None) -> date:
    """
    Shift ``day`` by ``months`` calendar months.

    The result keeps ``day_of_month`` (defaults to ``day.day``) and is clamped
    to the last day of the target month when that month is shorter.
    """
    target_day = day_of_month or day.day
    return day.replace(day=1) + relativedelta(months=months, day=target_day)


def next_occurrence_of_day(after: date, day_of_month: int, inclusive: bool = False) -> date:
    """
    First date on or after ``after`` falling on ``day_of_month`` (clamped).

    With ``inclusive=False`` the returned date is strictly after ``after``.
    """
    candidate = add_months(after, 0, day_of_month)
    if candidate < after or (candidate == after and not inclusive):
        candidate = add_months(after, 1, day_of_month)
    return candidate


def iter_days(start: date) -> Iterator[date]:
    """Infinite day-by-day iterator starting at ``start``."""
    current = start
    while True:
        yield current
        current += timedelta(days=1)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive timestamps read back from the database as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def format_date(day: date) -> str:
    """Format as ``YYYY-MM-DD``."""
    return day.strftime(DATE_FORMAT)
