from __future__ import annotations

from influxdb_client import InfluxDBClient

from glowline.core.config import Settings


def create_influx_client(settings: Settings) -> InfluxDBClient:
    if not settings.influx_configured:
        raise ValueError(
            "InfluxDB is not configured: set GLOWMARKT_INFLUX_URL, GLOWMARKT_INFLUX_TOKEN, "
            "GLOWMARKT_INFLUX_ORG and GLOWMARKT_INFLUX_BUCKET"
        )
    return InfluxDBClient(
        url=str(settings.influx_url),
        token=settings.influx_token,
        org=settings.influx_org,
        timeout=settings.influx_timeout_ms,
    )
