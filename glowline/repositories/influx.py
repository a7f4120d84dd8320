from __future__ import annotations

import logging
from collections.abc import Sequence

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from glowline.models.measurement import Measurement

logger = logging.getLogger(__name__)


def to_point(measurement: Measurement) -> Point:
    point = Point(measurement.id)
    for key, value in measurement.tags.items():
        point = point.tag(key, value)
    for key, value in measurement.fields.items():
        point = point.field(key, float(value))
    return point.time(measurement.timestamp, WritePrecision.NS)


class InfluxMeasurementRepository:
    def __init__(
        self,
        *,
        client: InfluxDBClient,
        org: str,
        bucket: str,
    ) -> None:
        self._client = client
        self._org = org
        self._bucket = bucket

    def ping(self) -> bool:
        return self._client.ping()

    def write_measurements(self, measurements: Sequence[Measurement]) -> int:
        if not measurements:
            return 0

        points = [to_point(m) for m in measurements]
        write_api = self._client.write_api(write_options=SYNCHRONOUS)
        write_api.write(bucket=self._bucket, org=self._org, record=points)
        logger.info("Wrote %d measurements to bucket %s", len(points), self._bucket)
        return len(points)
