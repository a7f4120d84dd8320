from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from glowline.core.errors import ErrorKind, GlowmarktError
from glowline.models.period import ReadingPeriod
from glowline.services.readings import fetch_readings, normalize_readings
from tests.fakes import FakeReadingSource, half_hourly

UTC = timezone.utc


def test_normalize_keeps_order_and_values() -> None:
    raw = [(1672531200, 0.25), (1672529400, -1.5), (1672531200, 0.25)]
    readings = normalize_readings(raw, ReadingPeriod.HALF_HOUR)

    assert [r.start for r in readings] == [
        datetime(2023, 1, 1, tzinfo=UTC),
        datetime(2022, 12, 31, 23, 30, tzinfo=UTC),
        datetime(2023, 1, 1, tzinfo=UTC),
    ]
    assert [r.value for r in readings] == [0.25, -1.5, 0.25]
    assert all(r.period is ReadingPeriod.HALF_HOUR for r in readings)


@pytest.mark.parametrize(
    ("period", "length"),
    [
        (ReadingPeriod.HALF_HOUR, timedelta(minutes=30)),
        (ReadingPeriod.HOUR, timedelta(hours=1)),
        (ReadingPeriod.DAY, timedelta(days=1)),
        (ReadingPeriod.WEEK, timedelta(days=7)),
    ],
)
def test_reading_end_for_fixed_periods(period: ReadingPeriod, length: timedelta) -> None:
    (reading,) = normalize_readings([(1672531200, 1.0)], period)
    assert reading.end == reading.start + length


@pytest.mark.parametrize("period", [ReadingPeriod.MONTH, ReadingPeriod.YEAR])
def test_reading_has_no_end_for_calendar_periods(period: ReadingPeriod) -> None:
    (reading,) = normalize_readings([(1672531200, 1.0)], period)
    assert reading.end is None


def test_normalize_out_of_range_timestamp_fails() -> None:
    with pytest.raises(GlowmarktError) as exc:
        normalize_readings([(1672531200, 1.0), (10**20, 2.0)], ReadingPeriod.HOUR)
    assert exc.value.kind is ErrorKind.RESPONSE


def test_fetch_readings_requests_each_chunk(start: datetime) -> None:
    readings = half_hourly(start, [1.0] * 10)
    source = FakeReadingSource({"res-elec": readings})

    chunks = fetch_readings(
        source, "res-elec", start, start + timedelta(days=19), ReadingPeriod.HALF_HOUR
    )

    assert len(chunks) == 2
    assert [call[1] for call in source.calls] == [
        start,
        start + timedelta(days=10, minutes=30),
    ]
    assert chunks[0][1] == readings
    assert chunks[1][1] == []


def test_normalize_narrows_to_single_precision() -> None:
    (reading,) = normalize_readings([(1672531200, 0.1)], ReadingPeriod.HALF_HOUR)
    assert reading.value == 0.10000000149011612


def test_normalize_value_out_of_single_precision_range_fails() -> None:
    with pytest.raises(GlowmarktError) as exc:
        normalize_readings([(1672531200, 1e39)], ReadingPeriod.HALF_HOUR)
    assert exc.value.kind is ErrorKind.RESPONSE
