from __future__ import annotations

from datetime import datetime, timezone

import pytest

from glowline.schemas.api import Device, Resource
from tests.fakes import make_device, make_resources


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # Keep a developer's .env or GLOWMARKT_* variables out of the tests.
    monkeypatch.chdir(tmp_path)
    for name in (
        "GLOWMARKT_USERNAME",
        "GLOWMARKT_PASSWORD",
        "GLOWMARKT_TOKEN",
        "GLOWMARKT_FAILURE_POLICY",
        "GLOWMARKT_BASE_URL",
        "GLOWMARKT_LOG_LEVEL",
        "GLOWMARKT_INFLUX_URL",
        "GLOWMARKT_INFLUX_TOKEN",
        "GLOWMARKT_INFLUX_ORG",
        "GLOWMARKT_INFLUX_BUCKET",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def start() -> datetime:
    return datetime(2023, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def device() -> Device:
    return make_device()


@pytest.fixture()
def resources() -> dict[str, Resource]:
    return make_resources()
