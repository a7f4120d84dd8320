"""Command line access to the Glowmarkt API.

Credentials come from ``--username``/``--password``/``--token`` or the
``GLOWMARKT_*`` environment variables (see ``glowline.core.config``).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from glowline.clients.glowmarkt import GlowmarktClient
from glowline.core.config import Settings, load_settings
from glowline.core.errors import ErrorKind, GlowmarktError
from glowline.core.logging import configure_logging
from glowline.core.times import parse_time
from glowline.db.influx import create_influx_client
from glowline.models.measurement import Measurement
from glowline.models.period import ReadingPeriod
from glowline.repositories.base import MeasurementSink
from glowline.repositories.influx import InfluxMeasurementRepository
from glowline.repositories.lines import LineProtocolWriter
from glowline.schemas.readings import ReadingOut
from glowline.services.measurements import FailurePolicy, MeasurementService
from glowline.services.periods import align_to_period
from glowline.services.readings import fetch_readings

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALIGNABLE_PERIODS = (ReadingPeriod.HALF_HOUR, ReadingPeriod.HOUR)


def _tag(value: str) -> tuple[str, str]:
    key, sep, tag_value = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Tag '{value}' must look like key=value")
    return key, tag_value


def _period(value: str) -> ReadingPeriod:
    try:
        return ReadingPeriod.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _time(value: str) -> datetime:
    try:
        return parse_time(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid timestamp '{value}'") from e


def _add_range_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="start", type=_time, help="Start of the range (ISO 8601)")
    parser.add_argument("--to", dest="end", type=_time, help="End of the range (ISO 8601)")
    parser.add_argument(
        "--period",
        type=_period,
        default=ReadingPeriod.HALF_HOUR,
        help="Reading period: half-hour, hour, day, week, month or year",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glowline", description="Access Glowmarkt smart meter data."
    )
    parser.add_argument("-u", "--username", help="Glowmarkt account username")
    parser.add_argument("-p", "--password", help="Glowmarkt account password")
    parser.add_argument("--token", help="Use an existing API token")
    parser.add_argument("--log-level", help="Logging level (default WARNING)")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("validate", help="Check that the credentials are valid")
    commands.add_parser("virtual-entities", help="List virtual entities")
    commands.add_parser("devices", help="List devices")
    commands.add_parser("device-types", help="List device types")
    commands.add_parser("resources", help="List resources")
    commands.add_parser("resource-types", help="List resource types")

    for name, help_text in (
        ("virtual-entity", "Show one virtual entity"),
        ("device", "Show one device"),
        ("resource", "Show one resource"),
        ("tariff", "Show the latest tariff for a resource"),
        ("tariff-list", "List the tariffs for a resource"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("id")

    readings = commands.add_parser("readings", help="Print readings for a resource as JSON")
    readings.add_argument("resource_id")
    _add_range_arguments(readings)

    influx = commands.add_parser("influx", help="Print or write readings as line protocol")
    _add_range_arguments(influx)
    influx.add_argument(
        "--tag",
        dest="tags",
        type=_tag,
        action="append",
        default=[],
        help="Extra tag for every measurement, key=value (repeatable)",
    )
    influx.add_argument(
        "--strip-zeros",
        action="store_true",
        help="Drop trailing measurements that are all zero",
    )
    influx.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail when any chunk of readings cannot be fetched",
    )
    influx.add_argument(
        "--write", action="store_true", help="Write to InfluxDB instead of stdout"
    )
    return parser


def connect(settings: Settings) -> GlowmarktClient:
    if settings.token:
        return GlowmarktClient.from_token(
            settings.token,
            endpoint=settings.endpoint,
            timeout_seconds=settings.timeout_seconds,
        )
    if settings.has_credentials:
        return GlowmarktClient.authenticate(
            settings.username or "",
            settings.password or "",
            endpoint=settings.endpoint,
            timeout_seconds=settings.timeout_seconds,
        )
    raise GlowmarktError(
        ErrorKind.NOT_AUTHENTICATED, "Must pass a token or a username and password."
    )


def run_with_client(settings: Settings, fn: Callable[[GlowmarktClient], T]) -> T:
    """Run ``fn`` with a connected client.

    A rejected stored token is replaced once by logging in again when a
    username and password are also available.
    """
    with connect(settings) as client:
        try:
            return fn(client)
        except GlowmarktError as e:
            if not (
                e.kind is ErrorKind.NOT_AUTHENTICATED
                and settings.token
                and settings.has_credentials
            ):
                raise
            logger.info("Token rejected, logging in again")
            client.login(settings.username or "", settings.password or "")
            return fn(client)


def resolve_range(
    start: datetime | None, end: datetime | None, period: ReadingPeriod
) -> tuple[datetime, datetime]:
    end = end or datetime.now(tz=timezone.utc)
    start = start or end - timedelta(days=1)
    if period in ALIGNABLE_PERIODS:
        start = align_to_period(start, period)
        end = align_to_period(end, period)
    return start, end


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return [_dump(v) for v in value.values()]
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _print_json(value: Any) -> None:
    print(json.dumps(_dump(value), indent=2))


def _show(value: Any, what: str, ident: str) -> int:
    if value is None:
        print(f"No {what} with id {ident}", file=sys.stderr)
        return 1
    _print_json(value)
    return 0


def _readings(client: GlowmarktClient, args: argparse.Namespace) -> int:
    start, end = resolve_range(args.start, args.end, args.period)
    chunks = fetch_readings(client, args.resource_id, start, end, args.period)
    _print_json([ReadingOut.from_reading(r) for _, readings in chunks for r in readings])
    return 0


def _influx(client: GlowmarktClient, args: argparse.Namespace, settings: Settings) -> int:
    if not args.write:
        return _write(LineProtocolWriter(sys.stdout), _collect(client, args, settings))

    with create_influx_client(settings) as influx:
        repo = InfluxMeasurementRepository(
            client=influx,
            org=settings.influx_org or "",
            bucket=settings.influx_bucket or "",
        )
        if not repo.ping():
            raise ValueError(f"InfluxDB at {settings.influx_url} is not reachable")
        return _write(repo, _collect(client, args, settings))


def _write(sink: MeasurementSink, measurements: list[Measurement]) -> int:
    written = sink.write_measurements(measurements)
    logger.info("Wrote %d measurements", written)
    return 0


def _collect(
    client: GlowmarktClient, args: argparse.Namespace, settings: Settings
) -> list[Measurement]:
    start, end = resolve_range(args.start, args.end, args.period)
    policy = FailurePolicy.STRICT if args.strict else settings.failure_policy
    service = MeasurementService(source=client, policy=policy)
    return service.measurements(
        devices=list(client.devices().values()),
        resources=client.resources(),
        start=start,
        end=end,
        period=args.period,
        tags=dict(args.tags),
        strip_trailing_zeros=args.strip_zeros,
    )


def dispatch(client: GlowmarktClient, args: argparse.Namespace, settings: Settings) -> int:
    command = args.command
    if command == "validate":
        expiry = client.validate()
        print(f"Token valid until {expiry.isoformat()}")
        return 0
    if command == "virtual-entities":
        _print_json(client.virtual_entities())
        return 0
    if command == "virtual-entity":
        return _show(client.virtual_entity(args.id), "virtual entity", args.id)
    if command == "devices":
        _print_json(client.devices())
        return 0
    if command == "device":
        return _show(client.device(args.id), "device", args.id)
    if command == "device-types":
        _print_json(client.device_types())
        return 0
    if command == "resources":
        _print_json(client.resources())
        return 0
    if command == "resource":
        return _show(client.resource(args.id), "resource", args.id)
    if command == "resource-types":
        _print_json(client.resource_types())
        return 0
    if command == "tariff":
        _print_json(client.latest_tariff(args.id))
        return 0
    if command == "tariff-list":
        _print_json(client.tariff_list(args.id))
        return 0
    if command == "readings":
        return _readings(client, args)
    if command == "influx":
        return _influx(client, args, settings)
    raise ValueError(f"Unknown command {command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    overrides = {
        key: value
        for key, value in (
            ("username", args.username),
            ("password", args.password),
            ("token", args.token),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        configure_logging(settings.log_level)
        return run_with_client(settings, lambda client: dispatch(client, args, settings))
    except (GlowmarktError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 1
