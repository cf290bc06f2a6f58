"""CloudWatch Logs backend: client, provisioning, serialization, emission."""

from .client import CloudWatchLogsClient, InputLogEvent, LogServiceClient, translate_error
from .handler import CloudLoggingHandler, EmissionHandler
from .provision import (
    STREAM_RETRYABLE,
    LogDestination,
    Provisioner,
    default_stream_policy,
    generate_stream_name,
    validate_group_name,
)
from .serializer import LogRecord, serialize, to_entry

__all__ = [
    # Client
    "CloudWatchLogsClient", "InputLogEvent", "LogServiceClient", "translate_error",
    # Provisioning
    "LogDestination", "Provisioner", "STREAM_RETRYABLE", "default_stream_policy",
    "generate_stream_name", "validate_group_name",
    # Serialization
    "LogRecord", "serialize", "to_entry",
    # Emission
    "EmissionHandler", "CloudLoggingHandler",
]
