from __future__ import annotations

import logging
import struct
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from glowline.core.errors import ErrorKind, GlowmarktError
from glowline.models.period import ReadingPeriod
from glowline.models.reading import Reading, TimeRange
from glowline.services.periods import split_periods

logger = logging.getLogger(__name__)

_FLOAT32 = struct.Struct("<f")


class ReadingSource(Protocol):
    def readings(
        self, resource_id: str, start: datetime, end: datetime, period: ReadingPeriod
    ) -> list[Reading]: ...


def normalize_readings(
    raw: Iterable[tuple[int, float]], period: ReadingPeriod
) -> list[Reading]:
    """Turn ``(epoch seconds, value)`` pairs into readings, keeping their order.

    The API reports single precision values, so each value is narrowed to a
    32-bit float before it is widened back to a Python float.
    """
    readings: list[Reading] = []
    for timestamp, value in raw:
        try:
            start = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise GlowmarktError(
                ErrorKind.RESPONSE, f"Reading timestamp {timestamp} is out of range"
            ) from e
        try:
            (narrowed,) = _FLOAT32.unpack(_FLOAT32.pack(value))
        except (OverflowError, struct.error) as e:
            raise GlowmarktError(
                ErrorKind.RESPONSE, f"Reading value {value} is out of range"
            ) from e
        readings.append(Reading(start=start, period=period, value=narrowed))
    return readings


def fetch_readings(
    source: ReadingSource,
    resource_id: str,
    start: datetime,
    end: datetime,
    period: ReadingPeriod,
) -> list[tuple[TimeRange, list[Reading]]]:
    """Fetch readings for a long range one API-sized chunk at a time."""
    results: list[tuple[TimeRange, list[Reading]]] = []
    for time_range in split_periods(start, end, period):
        readings = source.readings(resource_id, time_range.start, time_range.end, period)
        logger.debug(
            "Fetched %d readings for %s between %s and %s",
            len(readings),
            resource_id,
            time_range.start,
            time_range.end,
        )
        results.append((time_range, readings))
    return results
