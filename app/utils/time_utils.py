# app/utils/time_utils.py
"""Local wall-clock helpers. All booking times are naive, in DEFAULT_TIMEZONE."""
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config.settings import get_settings


def local_now() -> datetime:
    """Current time in the deployment timezone, without tzinfo"""
    tz = ZoneInfo(get_settings().DEFAULT_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def at_minutes(day: date, minutes: int) -> datetime:
    """Datetime for `minutes` after midnight of `day`"""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def sunday_based_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7


def month_bounds(moment: datetime) -> tuple:
    """[first day of month, first day of next month) as datetimes"""
    start = datetime(moment.year, moment.month, 1)
    if moment.month == 12:
        end = datetime(moment.year + 1, 1, 1)
    else:
        end = datetime(moment.year, moment.month + 1, 1)
    return start, end


def to_local_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to DEFAULT_TIMEZONE; naive ones are taken as local"""
    if value.tzinfo is None:
        return value
    tz = ZoneInfo(get_settings().DEFAULT_TIMEZONE)
    return value.astimezone(tz).replace(tzinfo=None)
