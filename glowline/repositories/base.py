from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from glowline.models.measurement import Measurement


class MeasurementSink(Protocol):
    def write_measurements(self, measurements: Sequence[Measurement]) -> int: ...
