# utils/datetime_utils.py

from datetime import datetime, date, timedelta
from typing import Callable, Iterator, Optional, Union

import pytz

DATE_KEY_FORMAT = "%Y-%m-%d"

Clock = Callable[[], datetime]

DateLike = Union[str, date, datetime]


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def get_timezone(name: str = "UTC"):
    return pytz.timezone(name)


def localize(dt: datetime, tz_name: str = "UTC") -> datetime:
    """Convert a datetime into the given timezone; naive values are taken as UTC."""
    tz = get_timezone(tz_name)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz)


def today_key(clock: Optional[Clock] = None, tz_name: str = "UTC") -> str:
    now = (clock or utc_now)()
    return localize(now, tz_name).strftime(DATE_KEY_FORMAT)


def parse_date_key(date_key: str) -> date:
    return datetime.strptime(date_key, DATE_KEY_FORMAT).date()


def to_date(value: DateLike) -> date:
    """Accepts a date key, a date or a datetime and returns the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date_key(value)


def to_date_key(value: DateLike) -> str:
    return to_date(value).strftime(DATE_KEY_FORMAT)


def add_days(date_key: str, days: int) -> str:
    return to_date_key(parse_date_key(date_key) + timedelta(days=days))


def weekday_name(value: DateLike) -> str:
    return to_date(value).strftime("%A").lower()


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_hour(hour: int) -> str:
    if hour == 0:
        return "12:00 AM"
    if hour == 12:
        return "12:00 PM"
    if hour < 12:
        return f"{hour}:00 AM"
    return f"{hour - 12}:00 PM"
