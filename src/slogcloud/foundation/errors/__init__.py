"""Unified error handling for slogcloud.

- ErrorCode: Error kinds driving retry decisions
- LogError: Structured error model carried by every exception
- SlogcloudError and subclasses: the exception taxonomy
"""

from .errors import (
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
    classify_exception,
)
from .types import JsonDict, JsonValue

__all__ = [
    # Core errors
    "ErrorCode", "LogError", "SlogcloudError", "classify_exception",
    # Taxonomy
    "ConfigurationError", "NotFoundError", "TransientServiceError", "PermanentServiceError",
    "AlreadyExistsError", "PayloadTooLargeError", "ProvisioningError", "EmissionError",
    # JSON aliases
    "JsonDict", "JsonValue",
]
