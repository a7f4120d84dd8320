from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
import jwt
from pydantic import TypeAdapter, ValidationError

from glowline.core.errors import ErrorKind, GlowmarktError, maybe
from glowline.core.times import to_api_time, to_rfc3339
from glowline.models.period import ReadingPeriod
from glowline.models.reading import Reading
from glowline.schemas.api import (
    AuthRequest,
    AuthResponse,
    Device,
    DeviceType,
    LatestTariffResponse,
    ReadingsResponse,
    Resource,
    ResourceType,
    TariffData,
    TariffListData,
    TariffListResponse,
    ValidateResponse,
    VirtualEntity,
    require_valid,
)
from glowline.services.readings import normalize_readings

logger = logging.getLogger(__name__)

BASE_URL = "https://api.glowmarkt.com/api/v0-1"
APPLICATION_ID = "b0f1b774-a586-4f72-9edd-27ead8aa7a8d"

T = TypeVar("T")

_AUTH_RESPONSE: TypeAdapter[Any] = TypeAdapter(AuthResponse)
_VALIDATE_RESPONSE: TypeAdapter[Any] = TypeAdapter(ValidateResponse)
_VIRTUAL_ENTITIES = TypeAdapter(list[VirtualEntity])
_VIRTUAL_ENTITY = TypeAdapter(VirtualEntity)
_DEVICE_TYPES = TypeAdapter(list[DeviceType])
_DEVICES = TypeAdapter(list[Device])
_DEVICE = TypeAdapter(Device)
_RESOURCE_TYPES = TypeAdapter(list[ResourceType])
_RESOURCES = TypeAdapter(list[Resource])
_RESOURCE = TypeAdapter(Resource)
_LATEST_TARIFF = TypeAdapter(LatestTariffResponse)
_TARIFF_LIST = TypeAdapter(TariffListResponse)
_READINGS = TypeAdapter(ReadingsResponse)


@dataclass(frozen=True)
class GlowmarktEndpoint:
    """Where to find the API and which application ID to present to it.

    A non-default endpoint is normally only useful for testing.
    """

    base_url: str = BASE_URL
    app_id: str = APPLICATION_ID

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path}"


def token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim of a Glowmarkt JWT without verifying it."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        logger.debug("Token is not a readable JWT, expiry unknown")
        return None
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


class GlowmarktClient:
    def __init__(
        self,
        *,
        token: str | None = None,
        expiry: datetime | None = None,
        endpoint: GlowmarktEndpoint | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint or GlowmarktEndpoint()
        self._client = httpx.Client(
            timeout=timeout_seconds,
            transport=transport,
            headers={
                "applicationId": self._endpoint.app_id,
                "Content-Type": "application/json",
            },
        )
        self.token: str | None = None
        self.expiry = expiry
        if token is not None:
            self._set_token(token)

    @classmethod
    def authenticate(
        cls,
        username: str,
        password: str,
        *,
        endpoint: GlowmarktEndpoint | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> GlowmarktClient:
        client = cls(endpoint=endpoint, timeout_seconds=timeout_seconds, transport=transport)
        try:
            client.login(username, password)
        except GlowmarktError:
            client.close()
            raise
        return client

    @classmethod
    def from_token(
        cls,
        token: str,
        *,
        endpoint: GlowmarktEndpoint | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> GlowmarktClient:
        return cls(
            token=token,
            expiry=token_expiry(token),
            endpoint=endpoint,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GlowmarktClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _set_token(self, token: str) -> None:
        self.token = token
        self._client.headers["token"] = token

    def _call(
        self,
        method: str,
        path: str,
        adapter: TypeAdapter[T],
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> T:
        url = self._endpoint.url(path)
        logger.debug("Sending %s request to %s", method, url)
        try:
            resp = self._client.request(method, url, params=params, json=json)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Received API error: %s", e)
            raise GlowmarktError.from_http_error(e) from e
        except httpx.HTTPError as e:
            raise GlowmarktError.from_http_error(e) from e

        try:
            return adapter.validate_json(resp.content)
        except ValidationError as e:
            raise GlowmarktError(ErrorKind.RESPONSE, str(e)) from e

    # User system

    def login(self, username: str, password: str) -> datetime:
        request = AuthRequest(username=username, password=password)
        response = require_valid(
            self._call("POST", "auth", _AUTH_RESPONSE, json=request.model_dump())
        )
        self._set_token(response.token)
        self.expiry = response.expiry
        logger.debug("Authenticated with API until %s", to_rfc3339(response.expiry))
        return response.expiry

    def validate(self) -> datetime:
        response = require_valid(self._call("GET", "auth", _VALIDATE_RESPONSE))
        self.expiry = response.expiry
        logger.debug("Authenticated with API until %s", to_rfc3339(response.expiry))
        return response.expiry

    # Device management system

    def device_types(self) -> dict[str, DeviceType]:
        return {d.id: d for d in self._call("GET", "devicetype", _DEVICE_TYPES)}

    def devices(self) -> dict[str, Device]:
        return {d.id: d for d in self._call("GET", "device", _DEVICES)}

    def device(self, device_id: str) -> Device | None:
        return maybe(self._call, "GET", f"device/{device_id}", _DEVICE)

    # Virtual entity system

    def virtual_entities(self) -> dict[str, VirtualEntity]:
        return {v.id: v for v in self._call("GET", "virtualentity", _VIRTUAL_ENTITIES)}

    def virtual_entity(self, entity_id: str) -> VirtualEntity | None:
        return maybe(self._call, "GET", f"virtualentity/{entity_id}", _VIRTUAL_ENTITY)

    # Resource system

    def resource_types(self) -> dict[str, ResourceType]:
        return {r.id: r for r in self._call("GET", "resourcetype", _RESOURCE_TYPES)}

    def resources(self) -> dict[str, Resource]:
        return {r.id: r for r in self._call("GET", "resource", _RESOURCES)}

    def resource(self, resource_id: str) -> Resource | None:
        return maybe(self._call, "GET", f"resource/{resource_id}", _RESOURCE)

    def latest_tariff(self, resource_id: str) -> list[TariffData]:
        return self._call("GET", f"resource/{resource_id}/tariff", _LATEST_TARIFF).data

    def tariff_list(self, resource_id: str) -> list[TariffListData]:
        return self._call("GET", f"resource/{resource_id}/tariff-list", _TARIFF_LIST).data

    def readings(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        period: ReadingPeriod,
    ) -> list[Reading]:
        """Fetch readings for one resource.

        The API behaves oddly with non-UTC timezones, so ``start`` and ``end``
        are sent as UTC and the returned readings are in UTC. The range must
        already fit within ``period.max_days``; see ``split_periods``.
        """
        response = self._call(
            "GET",
            f"resource/{resource_id}/readings",
            _READINGS,
            params={
                "from": to_api_time(start),
                "to": to_api_time(end),
                "period": period.value,
                "offset": "0",
                "function": "sum",
            },
        )
        return normalize_readings(response.data, period)
