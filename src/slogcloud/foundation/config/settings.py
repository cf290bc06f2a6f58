"""slogcloud configuration, read from SLOGCLOUD_* environment variables.

One section per concern (destination, provisioning, emission, console
logging), each validated by pydantic-settings. A .env file in the working
directory is honored.

Example:
    >>> from slogcloud.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.provision.stream_attempts
    3

    # Environment variables:
    # SLOGCLOUD_ENVIRONMENT=prod
    # SLOGCLOUD_CLOUD_LOG_GROUP=app-logs
    # SLOGCLOUD_CLOUD_REGION=eu-west-1
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import (
    Field,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

# CloudWatch Logs accepts 256 KiB per event including 26 bytes of overhead
MAX_EVENT_BYTES = 262_144 - 26
DEFAULT_STREAM_PREFIX = "slogcloud-stream"


class CloudSettings(BaseSettings):
    """CloudWatch Logs destination and connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SLOGCLOUD_CLOUD_",
        extra="ignore",
    )

    log_group: str = ""
    region: str = ""
    access_key: SecretStr | None = Field(default=None, description="Static access key id (default chain if unset)")
    secret_key: SecretStr | None = Field(default=None, description="Static secret access key")
    stream_prefix: Annotated[str, Field(min_length=1, max_length=64)] = DEFAULT_STREAM_PREFIX
    endpoint_url: str | None = Field(default=None, description="Override endpoint, e.g. a local emulator")
    connect_timeout: PositiveFloat = Field(default=5.0, description="Per-call connect timeout in seconds")
    read_timeout: PositiveFloat = Field(default=10.0, description="Per-call read timeout in seconds")


class ProvisionSettings(BaseSettings):
    """Log group and stream provisioning configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SLOGCLOUD_PROVISION_",
        extra="ignore",
    )

    stream_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    stream_retry_delay: NonNegativeFloat = Field(default=2.0, description="Delay between stream creation attempts")
    consistency_timeout: NonNegativeFloat = Field(default=2.0, description="Budget for new-group visibility polling")
    consistency_poll: PositiveFloat = Field(default=0.25, description="Initial visibility poll interval")
    max_elapsed: PositiveFloat | None = Field(default=None, description="Overall deadline for stream creation")


class EmissionSettings(BaseSettings):
    """Per-event emission configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SLOGCLOUD_EMISSION_",
        extra="ignore",
    )

    max_event_bytes: Annotated[int, Field(ge=64, le=MAX_EVENT_BYTES)] = MAX_EVENT_BYTES
    oversize: Literal["truncate", "reject"] = "truncate"


class LoggingSettings(BaseSettings):
    """Facade logger configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SLOGCLOUD_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    colors: bool | None = None  # TTY detection when unset

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v


class SlogcloudSettings(BaseSettings):
    """Root settings for slogcloud.

    Loads configuration from environment variables with SLOGCLOUD_ prefix.
    Sections are also settable as JSON or with the __ delimiter,
    e.g. SLOGCLOUD_PROVISION__STREAM_ATTEMPTS=5.

    Example environment variables:
        SLOGCLOUD_ENVIRONMENT=prod
        SLOGCLOUD_CLOUD_LOG_GROUP=app-logs
        SLOGCLOUD_CLOUD_REGION=us-east-1
        SLOGCLOUD_PROVISION_STREAM_ATTEMPTS=5
        SLOGCLOUD_EMISSION_OVERSIZE=reject
    """

    model_config = SettingsConfigDict(
        env_prefix="SLOGCLOUD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    environment: Annotated[str, Field(min_length=1, description="Backend name: prod, dev, or any registered one")] = "dev"

    # Nested settings (loaded with SLOGCLOUD_CLOUD_, SLOGCLOUD_PROVISION_, etc.)
    cloud: CloudSettings = Field(default_factory=CloudSettings)
    provision: ProvisionSettings = Field(default_factory=ProvisionSettings)
    emission: EmissionSettings = Field(default_factory=EmissionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        """Normalize environment name, accepting long forms."""
        if not isinstance(v, str):
            return v
        v = v.strip().lower()
        return {"production": "prod", "development": "dev"}.get(v, v)

    @computed_field
    @property
    def is_production(self) -> bool:
        return self.environment == "prod"


@lru_cache(maxsize=1)
def get_settings() -> SlogcloudSettings:
    """Get the global settings instance (cached)."""
    return SlogcloudSettings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
