from __future__ import annotations

from collections.abc import Sequence
from typing import TextIO

from glowline.models.measurement import Measurement


class LineProtocolWriter:
    """Writes measurements as line protocol, one per line."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_measurements(self, measurements: Sequence[Measurement]) -> int:
        for measurement in measurements:
            self._stream.write(f"{measurement}\n")
        self._stream.flush()
        return len(measurements)
