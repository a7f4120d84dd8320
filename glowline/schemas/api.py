from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator
from pydantic.alias_generators import to_camel

from glowline.core.errors import ErrorKind, GlowmarktError


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class AuthRequest(ApiModel):
    username: str
    password: str


class ErrorDetail(ApiModel):
    message: str = "Authentication error"


class InvalidAuthResponse(ApiModel):
    valid: bool = False
    error: ErrorDetail | str | None = None

    def message(self) -> str:
        if isinstance(self.error, ErrorDetail):
            return self.error.message
        if isinstance(self.error, str) and self.error:
            return self.error
        return "Authentication error"


class ValidAuthResponse(ApiModel):
    valid: bool
    token: str
    expiry: datetime = Field(alias="exp")


class ValidValidateResponse(ApiModel):
    valid: bool
    expiry: datetime = Field(alias="exp")


def _validity_tag(value: Any) -> str:
    if isinstance(value, dict):
        return "valid" if value.get("valid") is True else "invalid"
    return "valid" if getattr(value, "valid", False) is True else "invalid"


AuthResponse = Annotated[
    Union[
        Annotated[ValidAuthResponse, Tag("valid")],
        Annotated[InvalidAuthResponse, Tag("invalid")],
    ],
    Discriminator(_validity_tag),
]

ValidateResponse = Annotated[
    Union[
        Annotated[ValidValidateResponse, Tag("valid")],
        Annotated[InvalidAuthResponse, Tag("invalid")],
    ],
    Discriminator(_validity_tag),
]


def require_valid(response: Any) -> Any:
    if isinstance(response, InvalidAuthResponse):
        raise GlowmarktError(ErrorKind.NOT_AUTHENTICATED, response.message())
    return response


class ResourceInfo(ApiModel):
    resource_id: str
    resource_type_id: str | None = None


class VirtualEntity(ApiModel):
    id: str = Field(alias="veId")
    name: str
    active: bool = True
    type_id: str | None = Field(default=None, alias="veTypeId")
    owner_id: str | None = None
    resources: list[ResourceInfo] = Field(default_factory=list)


class Sensor(ApiModel):
    protocol_id: str
    resource_type_id: str


class Protocol(ApiModel):
    protocol: str
    sensors: list[Sensor] = Field(default_factory=list)


class DeviceType(ApiModel):
    id: str = Field(alias="deviceTypeId")
    description: str | None = None
    active: bool = True
    protocol: Protocol | None = None
    configuration: Any = None
    updated_at: datetime | None = None
    created_at: datetime | None = None


class DeviceSensor(ApiModel):
    protocol_id: str
    resource_id: str
    resource_type_id: str | None = None


class DeviceProtocol(ApiModel):
    protocol: str
    sensors: list[DeviceSensor] = Field(default_factory=list)


class Device(ApiModel):
    id: str = Field(alias="deviceId")
    description: str | None = None
    active: bool = True
    hardware_id: str = ""
    device_type_id: str | None = None
    owner_id: str | None = None
    hardware_id_names: list[str] = Field(default_factory=list)
    hardware_ids: dict[str, str] = Field(default_factory=dict)
    parent_hardware_id: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    protocol: DeviceProtocol
    updated_at: datetime | None = None
    created_at: datetime | None = None


class DataSourceResourceTypeInfo(ApiModel):
    data_type: str | None = Field(default=None, alias="type")
    unit: str | None = None
    range: str | None = None
    is_cost: bool | None = None
    method: str | None = None


class StorageField(ApiModel):
    field_name: str
    datatype: str
    negative: bool = False


class Storage(ApiModel):
    storage_type: str = Field(alias="type")
    sampling: str
    start: Any = None
    fields: list[StorageField] = Field(default_factory=list)


def _type_info(value: Any) -> Any:
    # Some resources send a bare string here instead of an object.
    if isinstance(value, str):
        return {"type": value}
    return value


class ResourceType(ApiModel):
    id: str = Field(alias="resourceTypeId")
    name: str
    description: str | None = None
    label: str | None = None
    active: bool = True
    classifier: str | None = None
    base_unit: str | None = None
    data_source_type: str | None = None
    data_source_resource_type_info: DataSourceResourceTypeInfo | None = None
    units: dict[str, str] = Field(default_factory=dict)
    storage: list[Storage] = Field(default_factory=list)

    @field_validator("data_source_resource_type_info", mode="before")
    @classmethod
    def _coerce_type_info(cls, v: Any) -> Any:
        return _type_info(v)


class Resource(ApiModel):
    id: str = Field(alias="resourceId")
    name: str
    description: str | None = None
    label: str | None = None
    active: bool = True
    type_id: str | None = Field(default=None, alias="resourceTypeId")
    owner_id: str | None = None
    classifier: str | None = None
    base_unit: str | None = None
    data_source_type: str | None = None
    data_source_resource_type_info: DataSourceResourceTypeInfo | None = None
    data_source_unit_info: Any = None
    updated_at: datetime | None = None
    created_at: datetime | None = None

    @field_validator("data_source_resource_type_info", mode="before")
    @classmethod
    def _coerce_type_info(cls, v: Any) -> Any:
        return _type_info(v)


class Plan(ApiModel):
    plan_detail: list[dict[str, Any]] = Field(default_factory=list)
    week_name: str | None = None
    source: str | None = None


class TariffData(ApiModel):
    plan: list[Plan] = Field(default_factory=list)
    cid: str | None = None
    commodity: str | None = None
    from_: datetime | None = Field(default=None, alias="from")
    name: str | None = None


class LatestTariffResponse(ApiModel):
    data: list[TariffData] = Field(default_factory=list)


class TariffListData(ApiModel):
    id: str
    plan: list[Plan] = Field(default_factory=list)
    effective_date: datetime | None = None
    from_: datetime | None = Field(default=None, alias="from")
    display_name: str | None = None
    name: str | None = None


class TariffListResponse(ApiModel):
    data: list[TariffListData] = Field(default_factory=list)


class ReadingsResponse(ApiModel):
    data: list[tuple[int, float]] = Field(default_factory=list)
