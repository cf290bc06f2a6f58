"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    DEFAULT_STREAM_PREFIX,
    MAX_EVENT_BYTES,
    CloudSettings,
    EmissionSettings,
    LoggingSettings,
    ProvisionSettings,
    SlogcloudSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "DEFAULT_STREAM_PREFIX",
    "MAX_EVENT_BYTES",
    "CloudSettings",
    "EmissionSettings",
    "LoggingSettings",
    "ProvisionSettings",
    "SlogcloudSettings",
    "clear_settings_cache",
    "get_settings",
]
