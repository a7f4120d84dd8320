from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_time(value: str) -> datetime:
    # Example: "2023-01-01T00:00:00Z"
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return to_utc(dt)


def to_api_time(dt: datetime) -> str:
    # The readings endpoint wants a bare local-less timestamp, always UTC.
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%S")


def to_rfc3339(dt: datetime) -> str:
    return to_utc(dt).isoformat().replace("+00:00", "Z")


def to_unix_nanos(dt: datetime) -> int:
    micros = (to_utc(dt) - EPOCH) // timedelta(microseconds=1)
    return micros * 1000
