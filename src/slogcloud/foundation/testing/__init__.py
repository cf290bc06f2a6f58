"""Testing utilities: an in-memory stand-in for the remote log service."""

from .fake import Call, FakeLogService

__all__ = ["Call", "FakeLogService"]
