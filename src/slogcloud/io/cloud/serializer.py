"""Record serialization: LogRecord -> JSON payload for the event message field.

Rules:
- One JSON object, "message" first, then one key per attribute (last write wins)
- Exceptions become their text, at any depth
- Unsupported values degrade to str(), then repr(), never failing the log call
- Optional size bound: shrink message, then attributes, or raise PayloadTooLargeError
  under the reject policy
"""

from __future__ import annotations

from dataclasses import dataclass, field

import orjson

from slogcloud.foundation.errors import JsonDict, PayloadTooLargeError

_OPTIONS = orjson.OPT_NON_STR_KEYS
_KEPT = frozenset({"message", "truncated"})


@dataclass(slots=True)
class LogRecord:
    """One log call: message plus ordered attributes. Ephemeral."""

    message: str
    attributes: JsonDict = field(default_factory=dict)


def _default(obj: object) -> object:
    """orjson fallback for types it cannot encode natively."""
    if isinstance(obj, BaseException):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    return str(obj)


def _dumps(entry: JsonDict) -> bytes:
    try:
        return orjson.dumps(entry, default=_default, option=_OPTIONS)
    except (orjson.JSONEncodeError, TypeError):
        return orjson.dumps({_safe_key(k): _safe_value(v) for k, v in entry.items()}, option=_OPTIONS)


def _safe_key(key: str) -> str:
    """Keys must be valid UTF-8; lone surrogates are written as \\uXXXX escapes."""
    try:
        key.encode()
    except UnicodeEncodeError:
        return key.encode("utf-8", "backslashreplace").decode()
    return key


def _safe_value(v: object) -> object:
    """Encode one value on its own, falling back to repr for anything orjson rejects."""
    try:
        return orjson.Fragment(orjson.dumps(v, default=_default, option=_OPTIONS))
    except (orjson.JSONEncodeError, TypeError):
        return repr(v)


def to_entry(record: LogRecord) -> JsonDict:
    """Flatten a record into the JSON object layout."""
    entry: JsonDict = {"message": record.message}
    for key, value in record.attributes.items():
        entry[str(key)] = str(value) if isinstance(value, BaseException) else value
    return entry


def serialize(record: LogRecord, *, max_bytes: int | None = None, truncate: bool = True) -> bytes:
    """Serialize record to JSON bytes.

    Args:
        record: Record to serialize
        max_bytes: Maximum payload size in bytes (None = unbounded)
        truncate: Shrink an oversized payload instead of raising

    Raises:
        PayloadTooLargeError: payload exceeds max_bytes and truncation is off,
            or max_bytes is below the smallest possible payload
    """
    entry = to_entry(record)
    payload = _dumps(entry)
    if max_bytes is None or len(payload) <= max_bytes:
        return payload
    if not truncate:
        raise PayloadTooLargeError(f"event of {len(payload)} bytes exceeds limit of {max_bytes}", operation="serialize")
    return _truncate(entry, payload, max_bytes)


def _truncate(entry: JsonDict, payload: bytes, max_bytes: int) -> bytes:
    """Shrink in order: message text, then the largest attributes become markers, then attributes go."""
    original = len(payload)
    entry["truncated"] = True
    payload = _dumps(entry)

    # Every dropped message byte removes at least one payload byte, so this terminates
    raw = str(entry.get("message", "")).encode("utf-8", "replace")
    while len(payload) > max_bytes and raw:
        raw = raw[: max(len(raw) - (len(payload) - max_bytes), 0)]
        entry["message"] = raw.decode("utf-8", "ignore")
        payload = _dumps(entry)

    sizes = {k: len(_dumps({k: v})) for k, v in entry.items() if k not in _KEPT}
    largest_first = sorted(sizes, key=sizes.__getitem__, reverse=True)
    for key in largest_first:
        if len(payload) <= max_bytes:
            return payload
        marker = f"<truncated {sizes[key]} bytes>"
        if len(marker) < sizes[key]:
            entry[key] = marker
            payload = _dumps(entry)
    for key in largest_first:
        if len(payload) <= max_bytes:
            return payload
        del entry[key]
        payload = _dumps(entry)

    if len(payload) > max_bytes:
        raise PayloadTooLargeError(
            f"limit of {max_bytes} bytes is below the minimal event ({original} bytes before truncation)",
            operation="serialize",
        )
    return payload
