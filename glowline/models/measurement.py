from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal

from glowline.core.times import to_unix_nanos


def escape(value: str) -> str:
    return value.replace(" ", "\\ ").replace(",", "\\,")


def _format_value(value: float) -> str:
    # Shortest round-tripping digits, written out without an exponent.
    text = format(Decimal(repr(value)), "f")
    if text.endswith(".0"):
        return text[:-2]
    return text


class Measurement:
    """One line of line protocol: an identifier, tags, fields and a timestamp.

    Tags and fields are kept in insertion order but rendered sorted by key so
    that the output is stable whatever order they were added in.
    """

    def __init__(
        self,
        id: str,
        timestamp: datetime,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.id = id
        self.timestamp = to_unix_nanos(timestamp)
        self.tags: dict[str, str] = dict(tags or {})
        self.fields: dict[str, float] = {}

    def add_field(self, key: str, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"Invalid value for '{key}' (must be finite number).")
        self.fields[key] = value

    def __repr__(self) -> str:
        return (
            f"Measurement(id={self.id!r}, timestamp={self.timestamp}, "
            f"tags={self.tags!r}, fields={self.fields!r})"
        )

    def __str__(self) -> str:
        if not self.fields:
            raise ValueError("Measurement has no fields")

        fields = ",".join(
            f"{escape(k)}={_format_value(v)}" for k, v in sorted(self.fields.items())
        )
        tags = ",".join(f"{escape(k)}={escape(v)}" for k, v in sorted(self.tags.items()))
        if tags:
            return f"{self.id},{tags} {fields} {self.timestamp}"
        return f"{self.id} {fields} {self.timestamp}"
