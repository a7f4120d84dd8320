from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from glowline.models.reading import Reading


class ReadingOut(BaseModel):
    start: datetime
    end: datetime | None = None
    value: float

    @classmethod
    def from_reading(cls, reading: Reading) -> ReadingOut:
        return cls(start=reading.start, end=reading.end, value=reading.value)
