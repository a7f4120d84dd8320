from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from glowline.models.period import ReadingPeriod


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Reading:
    start: datetime
    period: ReadingPeriod
    value: float

    @property
    def end(self) -> datetime | None:
        duration = self.period.duration
        if duration is None:
            return None
        return self.start + duration
