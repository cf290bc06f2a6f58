"""slogcloud - Structured logging to the console in development and CloudWatch Logs in production.

One uniform logger surface (debug/info/warning/error/fatal) over pluggable
backends. The production backend provisions a log group and a unique stream
once, then ships every entry as a JSON event.

Quick Start:
    >>> from slogcloud import get_logger
    >>>
    >>> log = get_logger("dev")
    >>> log.info("listening", port=8080)
    >>>
    >>> log = get_logger("prod", access_key, secret_key, "app-logs", "eu-west-1")
    >>> log.error("payment failed", err=exc, order_id=42)

From Environment Variables:
    >>> # SLOGCLOUD_ENVIRONMENT=prod SLOGCLOUD_CLOUD_LOG_GROUP=app-logs SLOGCLOUD_CLOUD_REGION=eu-west-1
    >>> from slogcloud import logger_from_settings
    >>> log = logger_from_settings()

stdlib logging Bridge:
    >>> import logging
    >>> from slogcloud import CloudLoggingHandler
    >>> logging.getLogger("billing").addHandler(CloudLoggingHandler(emitter))
"""

from .foundation.config import SlogcloudSettings, clear_settings_cache, get_settings
from .foundation.errors import (
    AlreadyExistsError,
    ConfigurationError,
    EmissionError,
    ErrorCode,
    LogError,
    NotFoundError,
    PayloadTooLargeError,
    PermanentServiceError,
    ProvisioningError,
    SlogcloudError,
    TransientServiceError,
)
from .io.cloud import (
    CloudLoggingHandler,
    CloudWatchLogsClient,
    EmissionHandler,
    LogDestination,
    LogRecord,
    LogServiceClient,
    Provisioner,
    serialize,
)
from .observability import (
    BoundLogger,
    ConsoleRenderer,
    Environment,
    Logger,
    LogRenderer,
    get_logger,
    logger_from_settings,
    register_backend,
)

__version__ = "0.1.0"

__all__ = [
    # Facade
    "get_logger", "logger_from_settings", "register_backend", "Environment",
    "Logger", "BoundLogger", "LogRenderer", "ConsoleRenderer",
    # Cloud pipeline
    "CloudWatchLogsClient", "LogServiceClient", "Provisioner", "LogDestination",
    "LogRecord", "serialize", "EmissionHandler", "CloudLoggingHandler",
    # Config
    "SlogcloudSettings", "get_settings", "clear_settings_cache",
    # Errors
    "ErrorCode", "LogError", "SlogcloudError", "ConfigurationError", "NotFoundError",
    "TransientServiceError", "PermanentServiceError", "AlreadyExistsError",
    "PayloadTooLargeError", "ProvisioningError", "EmissionError",
]
