from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from enum import Enum


class ReadingPeriod(str, Enum):
    """The time window covered by each reading.

    The value is what the readings endpoint expects as its ``period`` query
    parameter.
    """

    HALF_HOUR = "PT30M"
    HOUR = "PT1H"
    DAY = "P1D"
    WEEK = "P1W"
    MONTH = "P1M"
    YEAR = "P1Y"

    @property
    def duration(self) -> timedelta | None:
        """Fixed length of the period, ``None`` for calendar periods."""
        return _DURATIONS.get(self)

    @property
    def max_days(self) -> int:
        """Longest range, in days, that one readings request may cover."""
        return _MAX_DAYS[self]

    def increment(self, dt: datetime) -> datetime:
        duration = self.duration
        if duration is not None:
            return dt + duration
        if self is ReadingPeriod.MONTH:
            year, month = (dt.year + 1, 1) if dt.month == 12 else (dt.year, dt.month + 1)
            return _replace_clamped(dt, year, month)
        return _replace_clamped(dt, dt.year + 1, dt.month)

    @classmethod
    def parse(cls, value: str) -> ReadingPeriod:
        key = value.strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if key in (member.value.lower(), member.name.lower().replace("_", "")):
                return member
        raise ValueError(f"Unknown reading period '{value}'")


def _replace_clamped(dt: datetime, year: int, month: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


_DURATIONS: dict[ReadingPeriod, timedelta] = {
    ReadingPeriod.HALF_HOUR: timedelta(minutes=30),
    ReadingPeriod.HOUR: timedelta(hours=1),
    ReadingPeriod.DAY: timedelta(days=1),
    ReadingPeriod.WEEK: timedelta(days=7),
}

_MAX_DAYS: dict[ReadingPeriod, int] = {
    ReadingPeriod.HALF_HOUR: 10,
    ReadingPeriod.HOUR: 31,
    ReadingPeriod.DAY: 31,
    ReadingPeriod.WEEK: 6 * 7,
    ReadingPeriod.MONTH: 366,
    ReadingPeriod.YEAR: 366,
}
