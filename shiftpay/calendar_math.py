from __future__ import annotations
from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Iterator, Union

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def weekday_of(value: DateLike) -> int:
    """Monday is 0, Sunday is 6."""
    return _as_date(value).weekday()


def start_of_week(value: DateLike) -> date:
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def start_of_month(value: DateLike) -> date:
    return _as_date(value).replace(day=1)


def end_of_month(value: DateLike) -> date:
    day = _as_date(value)
    _, last_day = monthrange(day.year, day.month)
    return day.replace(day=last_day)


def days_between(start: DateLike, end: DateLike) -> int:
    return (_as_date(end) - _as_date(start)).days


def floor_mod(n: int, m: int) -> int:
    # Python's % already floors toward negative infinity.
    return n % m


def floor_div(n: int, m: int) -> int:
    return n // m


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def at_minute(day: DateLike, minute_of_day: int) -> datetime:
    midnight = datetime.combine(_as_date(day), datetime.min.time())
    return midnight + timedelta(minutes=minute_of_day)


def date_range(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield each calendar day in the half-open range [start, end)."""
    current = _as_date(start)
    stop = _as_date(end)
    while current < stop:
        yield current
        current += timedelta(days=1)
