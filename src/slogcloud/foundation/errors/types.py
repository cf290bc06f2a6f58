"""JSON type aliases shared by the serializer, client and logger."""

from __future__ import annotations

from typing import Any, Union

# Any for recursive slots
JsonValue = Union[str, int, float, bool, None, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]
