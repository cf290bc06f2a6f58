"""Observability module: logger facade, renderers and backend registry."""

from .facade import (
    BackendConfig,
    BackendFactory,
    Environment,
    available_backends,
    cloud_backend,
    console_backend,
    get_logger,
    logger_from_settings,
    register_backend,
    unregister_backend,
)
from .logger import BoundLogger, CloudRenderer, ConsoleRenderer, LogEntry, Logger, LogRenderer

__all__ = [
    # Logger
    "Logger", "BoundLogger", "LogEntry",
    # Renderers
    "LogRenderer", "ConsoleRenderer", "CloudRenderer",
    # Facade
    "Environment", "BackendConfig", "BackendFactory", "get_logger", "logger_from_settings",
    "register_backend", "unregister_backend", "available_backends",
    "console_backend", "cloud_backend",
]
