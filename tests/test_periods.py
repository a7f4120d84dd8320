from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from glowline.core.errors import InvalidRangeError, UnsupportedPeriodError
from glowline.models.period import ReadingPeriod
from glowline.services.periods import align_to_period, split_periods

UTC = timezone.utc


@pytest.mark.parametrize(
    ("minute", "expected"),
    [(0, 0), (17, 0), (29, 0), (30, 30), (45, 30), (59, 30)],
)
def test_align_half_hour(minute: int, expected: int) -> None:
    dt = datetime(2023, 3, 4, 13, minute, 42, 123456, tzinfo=UTC)
    assert align_to_period(dt, ReadingPeriod.HALF_HOUR) == datetime(
        2023, 3, 4, 13, expected, tzinfo=UTC
    )


def test_align_hour() -> None:
    dt = datetime(2023, 3, 4, 13, 47, 1, 9, tzinfo=UTC)
    assert align_to_period(dt, ReadingPeriod.HOUR) == datetime(2023, 3, 4, 13, 0, tzinfo=UTC)


@pytest.mark.parametrize("period", [ReadingPeriod.HALF_HOUR, ReadingPeriod.HOUR])
def test_align_is_idempotent(period: ReadingPeriod) -> None:
    for minute in range(0, 60, 7):
        dt = datetime(2023, 6, 1, 8, minute, 13, tzinfo=UTC)
        once = align_to_period(dt, period)
        assert align_to_period(once, period) == once


def test_align_naive_is_treated_as_utc() -> None:
    aligned = align_to_period(datetime(2023, 1, 1, 10, 31), ReadingPeriod.HALF_HOUR)
    assert aligned == datetime(2023, 1, 1, 10, 30, tzinfo=UTC)


@pytest.mark.parametrize(
    "period",
    [ReadingPeriod.DAY, ReadingPeriod.WEEK, ReadingPeriod.MONTH, ReadingPeriod.YEAR],
)
def test_align_other_periods_is_unsupported(period: ReadingPeriod) -> None:
    with pytest.raises(UnsupportedPeriodError, match="Unsupported alignment period"):
        align_to_period(datetime(2023, 1, 1, 10, 31, tzinfo=UTC), period)


def test_split_half_hour_scenario() -> None:
    ranges = split_periods(
        datetime(2023, 1, 1, tzinfo=UTC),
        datetime(2023, 1, 20, tzinfo=UTC),
        ReadingPeriod.HALF_HOUR,
    )
    assert len(ranges) == 2
    assert ranges[0].start == datetime(2023, 1, 1, tzinfo=UTC)
    assert ranges[0].end == datetime(2023, 1, 11, tzinfo=UTC)
    assert ranges[1].start == datetime(2023, 1, 11, 0, 30, tzinfo=UTC)
    assert ranges[1].end == datetime(2023, 1, 20, tzinfo=UTC)


def test_split_short_range_is_single() -> None:
    start = datetime(2023, 1, 1, tzinfo=UTC)
    end = datetime(2023, 1, 5, tzinfo=UTC)
    ranges = split_periods(start, end, ReadingPeriod.HOUR)
    assert [(r.start, r.end) for r in ranges] == [(start, end)]


def test_split_zero_length() -> None:
    start = datetime(2023, 1, 1, tzinfo=UTC)
    ranges = split_periods(start, start, ReadingPeriod.DAY)
    assert len(ranges) == 1
    assert ranges[0].start == ranges[0].end == start


def test_split_end_before_start() -> None:
    with pytest.raises(InvalidRangeError):
        split_periods(
            datetime(2023, 1, 2, tzinfo=UTC),
            datetime(2023, 1, 1, tzinfo=UTC),
            ReadingPeriod.DAY,
        )


def test_split_converts_to_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    ranges = split_periods(
        datetime(2023, 1, 1, 2, 0, tzinfo=plus_two),
        datetime(2023, 1, 2, 2, 0, tzinfo=plus_two),
        ReadingPeriod.HOUR,
    )
    assert ranges[0].start == datetime(2023, 1, 1, tzinfo=UTC)
    assert ranges[0].start.utcoffset() == timedelta(0)
    assert ranges[0].end.utcoffset() == timedelta(0)


@pytest.mark.parametrize("period", list(ReadingPeriod))
@pytest.mark.parametrize("days", [0, 1, 9, 10, 11, 45, 100, 400, 1000])
def test_split_covers_range_within_max_span(period: ReadingPeriod, days: int) -> None:
    start = datetime(2022, 12, 31, 6, 30, tzinfo=UTC)
    end = start + timedelta(days=days, hours=5)
    ranges = split_periods(start, end, period)

    assert ranges[0].start == start
    assert ranges[-1].end == end
    for r in ranges:
        assert r.end >= r.start
        assert r.end - r.start <= timedelta(days=period.max_days)
    for previous, current in zip(ranges, ranges[1:]):
        assert current.start > previous.start
        assert current.start > previous.end


def test_split_seam_skips_one_month() -> None:
    ranges = split_periods(
        datetime(2020, 1, 1, tzinfo=UTC),
        datetime(2022, 1, 1, tzinfo=UTC),
        ReadingPeriod.MONTH,
    )
    first_end = datetime(2020, 1, 1, tzinfo=UTC) + timedelta(days=366)
    assert ranges[0].end == first_end
    assert ranges[1].start == datetime(2021, 2, 1, tzinfo=UTC)


def test_split_never_starts_after_end() -> None:
    start = datetime(2023, 1, 1, tzinfo=UTC)
    end = datetime(2023, 1, 11, 0, 10, tzinfo=UTC)
    ranges = split_periods(start, end, ReadingPeriod.HALF_HOUR)
    assert ranges[-1].start <= ranges[-1].end == end


@pytest.mark.parametrize(
    ("period", "dt", "expected"),
    [
        (ReadingPeriod.HALF_HOUR, datetime(2023, 1, 1, 23, 30), datetime(2023, 1, 2)),
        (ReadingPeriod.WEEK, datetime(2023, 1, 1), datetime(2023, 1, 8)),
        (ReadingPeriod.MONTH, datetime(2023, 1, 31), datetime(2023, 2, 28)),
        (ReadingPeriod.MONTH, datetime(2023, 12, 15), datetime(2024, 1, 15)),
        (ReadingPeriod.YEAR, datetime(2024, 2, 29), datetime(2025, 2, 28)),
    ],
)
def test_increment(period: ReadingPeriod, dt: datetime, expected: datetime) -> None:
    assert period.increment(dt) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("PT30M", ReadingPeriod.HALF_HOUR),
        ("half-hour", ReadingPeriod.HALF_HOUR),
        ("hour", ReadingPeriod.HOUR),
        ("P1W", ReadingPeriod.WEEK),
        ("Month", ReadingPeriod.MONTH),
    ],
)
def test_parse_period(value: str, expected: ReadingPeriod) -> None:
    assert ReadingPeriod.parse(value) is expected


def test_parse_unknown_period() -> None:
    with pytest.raises(ValueError):
        ReadingPeriod.parse("fortnight")
