# utils/datetime_utils.py

from datetime import datetime, date, timedelta
from typing import List, Optional, Union

import pytz

DEFAULT_TZ = pytz.timezone("Europe/Moscow")
DATE_KEY_FORMAT = "%Y-%m-%d"

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_start(value: DateLike) -> date:
    """Понедельник ISO-недели (воскресенье относится к предыдущему понедельнику)"""
    d = _as_date(value)
    return d - timedelta(days=d.weekday())


def date_key(value: DateLike) -> str:
    return _as_date(value).strftime(DATE_KEY_FORMAT)


def week_key(value: DateLike) -> str:
    return date_key(week_start(value))


def day_index(value: DateLike) -> int:
    """Monday=0 … Sunday=6"""
    return _as_date(value).weekday()


def add_days(value: DateLike, days: int) -> date:
    return _as_date(value) + timedelta(days=days)


def parse_date_key(key: str) -> date:
    """Разбор ключа YYYY-MM-DD, ValueError для любого другого формата"""
    if not isinstance(key, str) or len(key) != 10:
        raise ValueError(f"Invalid date key: {key!r}")
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def day_label(value: DateLike) -> str:
    d = _as_date(value)
    return f"{d.strftime('%b')} {d.day}"


def week_dates(start: DateLike) -> List[date]:
    monday = week_start(start)
    return [monday + timedelta(days=i) for i in range(7)]


# ===== CLOCK =====

class Clock:
    """Источник текущего времени"""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Настенные часы в заданной таймзоне"""

    def __init__(self, tz: Optional[Union[str, pytz.BaseTzInfo]] = None):
        if isinstance(tz, str):
            tz = pytz.timezone(tz)
        self.tz = tz or DEFAULT_TZ

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Зафиксированное время, для тестов и пересчётов"""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)
