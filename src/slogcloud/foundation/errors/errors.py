"""Standardized error handling for the cloud logging pipeline.

Provides error codes, a structured error model and the exception hierarchy
raised by the client, the provisioner and the emission handler. The code of
an error drives retry decisions: only TRANSIENT (and, while provisioning a
stream, NOT_FOUND) failures are ever retried.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import Annotated, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class ErrorCode(StrEnum):
    """Error kinds of the logging pipeline.

    Used for programmatic error handling and retry decisions.
    """
    CONFIGURATION = "CONFIGURATION"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    UNKNOWN = "UNKNOWN"


# Flattened pattern -> code mapping, checked in order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "notfound": ErrorCode.NOT_FOUND,
    "alreadyexists": ErrorCode.ALREADY_EXISTS,
    "timeout": ErrorCode.TRANSIENT,
    "timed out": ErrorCode.TRANSIENT,
    "connection": ErrorCode.TRANSIENT,
    "throttl": ErrorCode.TRANSIENT,
    "unavailable": ErrorCode.TRANSIENT,
    "credential": ErrorCode.CONFIGURATION,
    "region": ErrorCode.CONFIGURATION,
    "signature": ErrorCode.CONFIGURATION,
    "denied": ErrorCode.PERMANENT,
    "forbidden": ErrorCode.PERMANENT,
    "invalid": ErrorCode.PERMANENT,
    "limit": ErrorCode.PERMANENT,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())

_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({ErrorCode.TRANSIENT})


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code. Library errors keep their own code, others match on name/message."""
    if isinstance(exc, SlogcloudError):
        return exc.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class LogError(BaseModel):
    """Structured description of a pipeline failure.

    Attributes:
        operation: Remote operation or pipeline step that failed
        message: Human-readable error message
        code: Machine-readable error kind
        details: Optional extra information (service error code, request id)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    operation: str = ""
    message: Annotated[str, Field(min_length=1)]
    code: ErrorCode = ErrorCode.UNKNOWN
    details: str | None = None

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | BaseException) -> str:
        """Accept exception objects and extract message."""
        return (str(v) or type(v).__name__) if isinstance(v, BaseException) else v

    @computed_field
    @property
    def is_retryable(self) -> bool:
        """Whether this error is typically retryable (throttling, timeouts, network)."""
        return self.code in _RETRYABLE_CODES

    def render(self) -> str:
        prefix = f"{self.operation}: " if self.operation else ""
        suffix = f" ({self.details})" if self.details else ""
        return f"{prefix}{self.message}{suffix}"

    __str__ = render


class SlogcloudError(Exception):
    """Base exception wrapping a LogError. Subclasses fix the default code."""

    default_code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | BaseException,
        *,
        operation: str = "",
        code: ErrorCode | None = None,
        details: str | None = None,
    ) -> None:
        self.error = LogError(operation=operation, message=message, code=code or self.default_code, details=details)
        super().__init__(self.error.render())

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def operation(self) -> str:
        return self.error.operation

    @property
    def is_retryable(self) -> bool:
        return self.error.is_retryable

    @classmethod
    def from_exc(cls, exc: BaseException, operation: str = "", context: str = "") -> Self:
        """Wrap any exception, keeping the code of library errors and classifying the rest."""
        code = classify_exception(exc)
        return cls(f"{context}: {exc}" if context else exc, operation=operation, code=code)


class ConfigurationError(SlogcloudError):
    """Invalid or missing credentials, region or names. Never retried."""
    default_code = ErrorCode.CONFIGURATION


class NotFoundError(SlogcloudError):
    """The requested log group or stream does not exist."""
    default_code = ErrorCode.NOT_FOUND


class TransientServiceError(SlogcloudError):
    """Network timeouts, throttling, service unavailability."""
    default_code = ErrorCode.TRANSIENT


class PermanentServiceError(SlogcloudError):
    """Quota exceeded, malformed names, authorization denial, rejected events."""
    default_code = ErrorCode.PERMANENT


class AlreadyExistsError(PermanentServiceError):
    """Create call for a resource that already exists."""
    default_code = ErrorCode.ALREADY_EXISTS


class PayloadTooLargeError(SlogcloudError):
    """Serialized event exceeds the configured maximum event size."""
    default_code = ErrorCode.PAYLOAD_TOO_LARGE


class ProvisioningError(SlogcloudError):
    """Log destination could not be provisioned. Code mirrors the underlying failure."""


class EmissionError(SlogcloudError):
    """A log event could not be delivered. Code mirrors the underlying failure."""
