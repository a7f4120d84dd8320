from __future__ import annotations

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from glowline.clients.glowmarkt import APPLICATION_ID, BASE_URL, GlowmarktEndpoint
from glowline.services.measurements import FailurePolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GLOWMARKT_",
        case_sensitive=False,
    )

    base_url: AnyHttpUrl = Field(default=BASE_URL)
    application_id: str = Field(default=APPLICATION_ID, min_length=1)

    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    token: str | None = Field(default=None)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)

    failure_policy: FailurePolicy = Field(default=FailurePolicy.LENIENT)
    log_level: str = Field(default="WARNING")

    influx_url: AnyHttpUrl | None = Field(default=None)
    influx_token: str | None = Field(default=None)
    influx_org: str | None = Field(default=None)
    influx_bucket: str | None = Field(default=None)
    influx_timeout_ms: int = Field(default=10_000, ge=1000, le=120_000)

    @property
    def endpoint(self) -> GlowmarktEndpoint:
        return GlowmarktEndpoint(
            base_url=str(self.base_url).rstrip("/"),
            app_id=self.application_id,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def influx_configured(self) -> bool:
        return all(
            (self.influx_url, self.influx_token, self.influx_org, self.influx_bucket)
        )


def load_settings() -> Settings:
    return Settings()
