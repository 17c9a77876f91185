"""
Date Utilities

Month keys, recurrence stepping and the injectable clock.

All datetimes handled by the engine are timezone-aware UTC.
Month keys are derived from the UTC date, so "2024-03-31T23:30:00-05:00"
belongs to 2024-04.
"""

from datetime import datetime, timezone
from typing import Callable, Iterator

from dateutil.relativedelta import relativedelta

Clock = Callable[[], datetime]

# relativedelta clamps day overflow to the target month's length:
# Jan 31 + 1 month -> Feb 29 (leap year) / Feb 28.
FREQUENCY_STEPS = {
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def system_clock() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """A clock frozen at `moment`. Used by tests and replays."""
    frozen = ensure_utc(moment)

    def _clock() -> datetime:
        return frozen

    return _clock


def end_of_day(moment: datetime) -> datetime:
    """Last representable instant of the moment's day."""
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def step(moment: datetime, frequency: str) -> datetime:
    """Advance a datetime by one recurrence period."""
    try:
        delta = FREQUENCY_STEPS[frequency]
    except KeyError:
        raise ValueError(f"Unknown recurrence frequency: {frequency!r}")
    return moment + delta


def month_key(moment: datetime) -> str:
    """YYYY-MM key for a datetime."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m")


def parse_month_key(key: str) -> tuple[int, int]:
    """'2024-03' -> (2024, 3)"""
    year, month = key.split("-")
    return int(year), int(month)


def iter_month_keys(first: str, last: str) -> Iterator[str]:
    """Yield every month key from first to last inclusive."""
    year, month = parse_month_key(first)
    end = parse_month_key(last)
    while (year, month) <= end:
        yield f"{year:04d}-{month:02d}"
        month += 1
        if month > 12:
            month = 1
            year += 1


def months_between(start: datetime, end: datetime) -> int:
    """
    Calendar-month distance from start to end.

    Day of month is ignored: Jan 31 -> Feb 1 is one month.
    Negative when end is before start.
    """
    return (end.year - start.year) * 12 + end.month - start.month
