from __future__ import annotations

from datetime import datetime, timedelta, timezone

from glowline.core.errors import InvalidRangeError, UnsupportedPeriodError
from glowline.core.times import to_utc
from glowline.models.period import ReadingPeriod
from glowline.models.reading import TimeRange


def align_to_period(dt: datetime, period: ReadingPeriod) -> datetime:
    """Move ``dt`` back to the start of the reading period containing it.

    Only half-hour and hour periods can be aligned.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    cleared = dt.replace(second=0, microsecond=0)
    if period is ReadingPeriod.HALF_HOUR:
        return cleared.replace(minute=30 if dt.minute >= 30 else 0)
    if period is ReadingPeriod.HOUR:
        return cleared.replace(minute=0)
    raise UnsupportedPeriodError(
        f"Unsupported alignment period {period.name}: only HALF_HOUR and HOUR can be aligned"
    )


def split_periods(start: datetime, end: datetime, period: ReadingPeriod) -> list[TimeRange]:
    """Split ``start``..``end`` into ranges the readings endpoint will accept.

    Each range spans at most ``period.max_days``. The next range starts one
    period after the previous one ends so that boundary readings are not
    requested twice.
    """
    current = to_utc(start)
    final_end = to_utc(end)
    if final_end < current:
        raise InvalidRangeError("End of range is before its start")

    span = timedelta(days=period.max_days)
    ranges: list[TimeRange] = []
    while True:
        next_end = current + span
        if next_end >= final_end:
            ranges.append(TimeRange(current, final_end))
            break
        ranges.append(TimeRange(current, next_end))
        # Never step past the requested end, a range must not run backwards.
        current = min(period.increment(next_end), final_end)
    return ranges
