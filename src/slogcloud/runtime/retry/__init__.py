"""Retry policies and backoff strategies for remote log service calls."""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff
from .policy import DEFAULT_RETRYABLE, NO_RETRY, RetryPolicy, execute_with_retry_sync

__all__ = [
    "Backoff",
    "ConstantBackoff",
    "ExponentialBackoff",
    "DEFAULT_RETRYABLE",
    "NO_RETRY",
    "RetryPolicy",
    "execute_with_retry_sync",
]
