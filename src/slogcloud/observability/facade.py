"""Logger facade: pick a backend by environment and return a ready logger.

Backends are looked up in a registry keyed by environment name. Two are
built in:

- ``dev``: console output, no network access
- ``prod``: provisions a CloudWatch destination once, then emits every entry

Register more with ``register_backend``. The facade never installs anything
globally: callers keep the returned logger and pass it on.

Example:
    >>> log = get_logger("prod", access_key, secret_key, "app-logs", "eu-west-1")
    >>> log.info("service started", version="1.4.2")
    >>> log.fatal("cannot bind port", err)  # logs, then exits with status 1
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from slogcloud.foundation.config import SlogcloudSettings, get_settings
from slogcloud.foundation.errors import ConfigurationError
from slogcloud.io.cloud import CloudWatchLogsClient, EmissionHandler, LogServiceClient, Provisioner

from .logger import BoundLogger, CloudRenderer, ConsoleRenderer, LogRenderer

_diagnostics = logging.getLogger("slogcloud.facade")


class Environment(StrEnum):
    PROD = "prod"
    DEV = "dev"


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Everything a backend factory may need. Explicit arguments win over settings."""

    settings: SlogcloudSettings
    access_key: str | None = None
    secret_key: str | None = None
    log_group: str | None = None
    region: str | None = None
    client: LogServiceClient | None = None

    @property
    def resolved_log_group(self) -> str:
        return self.log_group or self.settings.cloud.log_group

    @property
    def resolved_region(self) -> str:
        return self.region or self.settings.cloud.region

    def resolved_keys(self) -> tuple[str | None, str | None]:
        cloud = self.settings.cloud
        access = self.access_key or (cloud.access_key.get_secret_value() if cloud.access_key else None)
        secret = self.secret_key or (cloud.secret_key.get_secret_value() if cloud.secret_key else None)
        return access, secret


BackendFactory = Callable[[BackendConfig], LogRenderer]

_BACKENDS: dict[str, BackendFactory] = {}


def register_backend(environment: str, factory: BackendFactory) -> None:
    """Register (or replace) the backend used for an environment name."""
    _BACKENDS[environment.strip().lower()] = factory


def unregister_backend(environment: str) -> None:
    _BACKENDS.pop(environment.strip().lower(), None)


def available_backends() -> frozenset[str]:
    return frozenset(_BACKENDS)


# ─────────────────────────────────────────────────────────────────────────────
# Built-in Backends
# ─────────────────────────────────────────────────────────────────────────────


def console_backend(config: BackendConfig) -> LogRenderer:
    return ConsoleRenderer(colors=config.settings.logging.colors)


def cloud_backend(config: BackendConfig) -> LogRenderer:
    """Provision a CloudWatch destination and bind an emission handler to it.

    Raises:
        ConfigurationError: missing group/region or invalid credentials shape
        ProvisioningError: remote setup failed
    """
    settings = config.settings
    if not (log_group := config.resolved_log_group):
        raise ConfigurationError("log group name is required in production", operation="get_logger")

    client = config.client
    if client is None:
        access, secret = config.resolved_keys()
        client = CloudWatchLogsClient.from_credentials(
            config.resolved_region,
            access,
            secret,
            endpoint_url=settings.cloud.endpoint_url,
            connect_timeout=settings.cloud.connect_timeout,
            read_timeout=settings.cloud.read_timeout,
        )

    provisioner = Provisioner.from_settings(client, settings.provision, settings.cloud.stream_prefix)
    destination = provisioner.provision(log_group)
    emission = settings.emission
    return CloudRenderer(EmissionHandler(
        destination,
        max_event_bytes=emission.max_event_bytes,
        truncate=emission.oversize == "truncate",
    ))


register_backend(Environment.DEV, console_backend)
register_backend(Environment.PROD, cloud_backend)


# ─────────────────────────────────────────────────────────────────────────────
# Facade
# ─────────────────────────────────────────────────────────────────────────────


def get_logger(
    environment: str,
    access_key: str | None = None,
    secret_key: str | None = None,
    log_group: str | None = None,
    region: str | None = None,
    *,
    settings: SlogcloudSettings | None = None,
    client: LogServiceClient | None = None,
    name: str | None = None,
    exit: Callable[[int], object] = sys.exit,
) -> BoundLogger:
    """Build a logger for the given environment.

    Args:
        environment: Registered backend name ("prod" or "dev" built in)
        access_key: Static access key id (prod; default credential chain if omitted)
        secret_key: Static secret access key (prod)
        log_group: Log group name (prod; falls back to settings)
        region: Service region (prod; falls back to settings)
        settings: Configuration (default: get_settings())
        client: Pre-built LogServiceClient, skipping client construction
        name: Optional logger name, bound as the "logger" attribute
        exit: Process exit function used by fatal()

    Raises:
        ConfigurationError: unknown environment or invalid configuration
        ProvisioningError: production destination could not be provisioned
    """
    settings = settings or get_settings()
    env = str(environment).strip().lower()
    if (factory := _BACKENDS.get(env)) is None:
        raise ConfigurationError(
            f"unknown environment {environment!r}, expected one of {sorted(_BACKENDS)}", operation="get_logger"
        )

    renderer = factory(BackendConfig(settings, access_key, secret_key, log_group, region, client))
    _diagnostics.debug(f"Logger bound to {env} backend ({type(renderer).__name__})")
    return BoundLogger(
        renderer=renderer,
        context={"logger": name} if name else {},
        level=logging.getLevelName(settings.logging.level),
        exit=exit,
    )


def logger_from_settings(settings: SlogcloudSettings | None = None, *, client: LogServiceClient | None = None,
                         name: str | None = None) -> BoundLogger:
    """Build a logger entirely from configuration (SLOGCLOUD_* environment variables)."""
    settings = settings or get_settings()
    return get_logger(settings.environment, settings=settings, client=client, name=name)
