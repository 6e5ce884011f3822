from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RegistrySettings(BaseSettings):
    """Connection, cache and codec options for a schema registry client."""

    urls: str = Field(
        default="http://localhost:8081",
        description="Comma-separated registry base URLs, tried in order on transport failure",
    )
    basic_auth_user_info: str = Field(default="", description="Basic auth as user:password")
    bearer_token: str = ""
    ssl_verify: bool = True
    ssl_ca_location: str = ""
    ssl_certificate_location: str = ""
    ssl_key_location: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=300.0)

    # Cache policy
    cache_responses: bool = Field(
        default=True,
        description="Memoize schemas fetched from the registry",
    )
    cache_not_found: bool = Field(
        default=False,
        description="Remember 404 answers for ids and subject versions until invalidated",
    )
    codecs_enabled: bool = Field(
        default=True,
        description="Compile and attach a codec to every schema handed to callers",
    )
    latest_refresh: bool = Field(
        default=True,
        description="Default for resolve_latest: always ask the registry for the latest version",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(env_prefix="SCHEMA_REGISTRY_")

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v: str) -> str:
        urls = [u.strip() for u in v.split(",") if u.strip()]
        if not urls:
            raise ValueError("At least one schema registry URL is required")
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Schema registry URL must start with http:// or https://: {url}")
        return ",".join(u.rstrip("/") for u in urls)

    @field_validator("basic_auth_user_info")
    @classmethod
    def validate_user_info(cls, v: str) -> str:
        if v and ":" not in v:
            raise ValueError("basic_auth_user_info must have the form user:password")
        return v

    @model_validator(mode="after")
    def validate_single_auth_method(self) -> "RegistrySettings":
        if self.basic_auth_user_info and self.bearer_token:
            raise ValueError("Configure either basic auth or a bearer token, not both")
        if self.ssl_key_location and not self.ssl_certificate_location:
            raise ValueError("ssl_key_location requires ssl_certificate_location")
        return self

    @property
    def url_list(self) -> list[str]:
        return self.urls.split(",")


def get_settings() -> RegistrySettings:
    """Load and validate settings from environment variables."""
    return RegistrySettings()
