from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from enum import Enum

from glowline.core.errors import ErrorKind, GlowmarktError
from glowline.models.measurement import Measurement
from glowline.models.period import ReadingPeriod
from glowline.models.reading import Reading, TimeRange
from glowline.schemas.api import Device, Resource
from glowline.services.periods import split_periods
from glowline.services.readings import ReadingSource

logger = logging.getLogger(__name__)

MEASUREMENT_ID = "glowmarkt"

ReadingResults = Mapping[str, Sequence[tuple[TimeRange, Sequence[Reading]]]]


class FailurePolicy(str, Enum):
    """What to do when fetching one chunk of readings fails.

    ``LENIENT`` logs and skips the chunk, keeping everything else. A
    ``NOT_AUTHENTICATED`` failure is always raised.
    ``STRICT`` aborts the whole run with the original error.
    """

    LENIENT = "lenient"
    STRICT = "strict"


def device_tags(device: Device, extra: Mapping[str, str] | None = None) -> dict[str, str]:
    tags: dict[str, str] = {"device-id": device.id}
    if device.description is not None:
        tags["device"] = device.description
    tags["device-active"] = _bool_tag(device.active)
    tags["hardware-id"] = device.hardware_id
    tags.update(device.hardware_ids)
    if extra:
        tags.update(extra)
    return tags


def add_resource_tags(tags: dict[str, str], resource: Resource) -> None:
    tags["resource-id"] = resource.id
    tags["resource"] = resource.name
    tags["resource-active"] = _bool_tag(resource.active)
    if resource.classifier is not None:
        tags["classifier"] = resource.classifier
    if resource.base_unit is not None:
        tags["unit"] = resource.base_unit
    if resource.classifier is not None:
        tags["class"] = resource.classifier.split(".")[0]


def field_for_classifier(classifier: str | None) -> str:
    if classifier is None:
        return "value"
    return classifier.split(".")[-1]


def _bool_tag(value: bool) -> str:
    return "true" if value else "false"


def collect_readings(
    source: ReadingSource,
    resource_ids: Iterable[str],
    start: datetime,
    end: datetime,
    period: ReadingPeriod,
    policy: FailurePolicy = FailurePolicy.LENIENT,
) -> dict[str, list[tuple[TimeRange, list[Reading]]]]:
    ranges = split_periods(start, end, period)
    results: dict[str, list[tuple[TimeRange, list[Reading]]]] = {}
    for resource_id in resource_ids:
        if resource_id in results:
            continue
        chunks: list[tuple[TimeRange, list[Reading]]] = []
        for time_range in ranges:
            try:
                readings = source.readings(
                    resource_id, time_range.start, time_range.end, period
                )
            except GlowmarktError as e:
                # The caller may log in again and retry.
                if policy is FailurePolicy.STRICT or e.kind is ErrorKind.NOT_AUTHENTICATED:
                    raise
                logger.warning(
                    "Skipping readings for %s between %s and %s: %s",
                    resource_id,
                    time_range.start,
                    time_range.end,
                    e,
                )
                continue
            chunks.append((time_range, readings))
        results[resource_id] = chunks
    return results


def build_measurements(
    devices: Iterable[Device],
    resources: Mapping[str, Resource],
    results: ReadingResults,
    tags: Mapping[str, str] | None = None,
    strip_trailing_zeros: bool = False,
) -> list[Measurement]:
    measurements: list[Measurement] = []
    for device in devices:
        base_tags = device_tags(device, tags)
        for sensor in device.protocol.sensors:
            resource = resources.get(sensor.resource_id)
            if resource is None:
                logger.debug("No resource %s for device %s", sensor.resource_id, device.id)
                continue

            resource_tags = dict(base_tags)
            add_resource_tags(resource_tags, resource)
            field = field_for_classifier(resource.classifier)

            for _time_range, readings in results.get(sensor.resource_id, ()):
                for reading in readings:
                    measurement = Measurement(MEASUREMENT_ID, reading.start, resource_tags)
                    measurement.add_field(field, reading.value)
                    measurements.append(measurement)

    measurements.sort(key=lambda m: m.timestamp)
    if strip_trailing_zeros:
        return trim_trailing_zeros(measurements)
    return measurements


def trim_trailing_zeros(measurements: Sequence[Measurement]) -> list[Measurement]:
    """Drop the newest timestamps for as long as every field at them is zero.

    ``measurements`` must already be sorted by timestamp.
    """
    end = len(measurements)
    while end > 0:
        timestamp = measurements[end - 1].timestamp
        group_start = end
        while group_start > 0 and measurements[group_start - 1].timestamp == timestamp:
            group_start -= 1
        group = measurements[group_start:end]
        if any(value != 0.0 for m in group for value in m.fields.values()):
            break
        end = group_start
    return list(measurements[:end])


class MeasurementService:
    def __init__(
        self,
        *,
        source: ReadingSource,
        policy: FailurePolicy = FailurePolicy.LENIENT,
    ) -> None:
        self._source = source
        self._policy = policy

    def measurements(
        self,
        *,
        devices: Sequence[Device],
        resources: Mapping[str, Resource],
        start: datetime,
        end: datetime,
        period: ReadingPeriod,
        tags: Mapping[str, str] | None = None,
        strip_trailing_zeros: bool = False,
    ) -> list[Measurement]:
        resource_ids = [
            sensor.resource_id
            for device in devices
            for sensor in device.protocol.sensors
            if sensor.resource_id in resources
        ]
        results = collect_readings(
            self._source, resource_ids, start, end, period, self._policy
        )
        return build_measurements(
            devices,
            resources,
            results,
            tags=tags,
            strip_trailing_zeros=strip_trailing_zeros,
        )
