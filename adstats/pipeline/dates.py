"""
Date helpers for stat windows. Stat dates are calendar days in UTC.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Union

DATE_FORMAT = '%Y-%m-%d'


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse YYYY-MM-DD (or pass through a date). Raises ValueError on bad input."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def iter_days(date_from: date, date_to: date) -> Iterator[date]:
    """Yield every day in [date_from, date_to]; nothing when the range is reversed."""
    day = date_from
    while day <= date_to:
        yield day
        day += timedelta(days=1)
