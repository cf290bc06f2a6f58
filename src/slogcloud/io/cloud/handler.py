"""Emission: ship one serialized record per PutLogEvents call.

EmissionHandler is the per-record entry point used by the cloud renderer.
CloudLoggingHandler adapts it to the stdlib ``logging`` module so existing
``logging.getLogger(...)`` call sites can write to the same destination.

No retries happen here: a failed emission surfaces as EmissionError to the
caller of the log call.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from slogcloud.foundation.config import MAX_EVENT_BYTES
from slogcloud.foundation.errors import EmissionError, JsonDict, SlogcloudError

from .serializer import LogRecord, serialize

if TYPE_CHECKING:
    from .client import InputLogEvent
    from .provision import LogDestination


@dataclass(slots=True)
class EmissionHandler:
    """Serializes records and writes them to a provisioned destination.

    Safe for concurrent use: it holds only the immutable destination.

    Args:
        destination: Provisioned group/stream and client
        max_event_bytes: Upper bound on a serialized event
        truncate: Shorten oversized messages instead of rejecting them
        clock: Wall-clock time source in seconds
    """

    destination: LogDestination
    max_event_bytes: int = MAX_EVENT_BYTES
    truncate: bool = True
    clock: Callable[[], float] = time.time

    def build_event(self, record: LogRecord) -> InputLogEvent:
        payload = serialize(record, max_bytes=self.max_event_bytes, truncate=self.truncate)
        return {"timestamp": int(self.clock() * 1000), "message": payload.decode()}

    def emit(self, record: LogRecord) -> None:
        """Send one record.

        Raises:
            PayloadTooLargeError: record too large and truncation disabled
            EmissionError: the remote call failed (wraps the service error)
        """
        event = self.build_event(record)
        dest = self.destination
        try:
            dest.client.put_log_events(dest.group_name, dest.stream_name, [event])
        except SlogcloudError as e:
            raise EmissionError(
                f"failed to send log to {dest.group_name}/{dest.stream_name}: {e}",
                operation="put_log_events",
                code=e.code,
                details=e.error.details,
            ) from e


# Attributes every stdlib LogRecord carries; anything else came in through ``extra=``
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


class CloudLoggingHandler(logging.Handler):
    """stdlib logging handler writing through an EmissionHandler.

    Extras become attributes, exceptions an "error" attribute. Delivery
    failures go through ``handleError`` like any other stdlib handler.

    Do not attach it to the ``slogcloud`` logger hierarchy: the pipeline's own
    diagnostics would loop back into it.

    Example:
        >>> log = logging.getLogger("billing")
        >>> log.addHandler(CloudLoggingHandler(emitter))
        >>> log.info("charged", extra={"amount": 42})
    """

    def __init__(self, emitter: EmissionHandler, level: int = logging.NOTSET, *, include_level: bool = True) -> None:
        super().__init__(level)
        self.emitter = emitter
        self.include_level = include_level

    def to_record(self, record: logging.LogRecord) -> LogRecord:
        attrs: JsonDict = {"level": record.levelname.lower()} if self.include_level else {}
        attrs.update((k, v) for k, v in vars(record).items() if k not in _RESERVED)
        if record.exc_info and record.exc_info[1] is not None:
            attrs["error"] = record.exc_info[1]
        return LogRecord(record.getMessage(), attrs)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.emitter.emit(self.to_record(record))
        except Exception:  # noqa: BLE001 - stdlib contract: report via handleError, never raise
            self.handleError(record)
