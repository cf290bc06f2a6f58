"""Retry policy configuration for remote log service calls.

Retries are exception-based: an operation raising a SlogcloudError whose code
is in the policy's retryable set is re-run after the backoff delay until the
attempt budget (or the optional elapsed-time deadline) is spent. Any other
error propagates on the spot without consuming budget.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Callable, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    computed_field,
    field_serializer,
    field_validator,
)

from slogcloud.foundation.errors import ErrorCode, SlogcloudError

from .backoff import Backoff, ConstantBackoff

T = TypeVar("T")

logger = logging.getLogger("slogcloud.retry")

# Default retryable codes - transient errors that may succeed on retry
DEFAULT_RETRYABLE: frozenset[ErrorCode] = frozenset({ErrorCode.TRANSIENT})


class RetryPolicy(BaseModel):
    """How many times, how far apart, and for which error codes to re-run a remote call.

    Attributes:
        max_attempts: Attempt budget, first call included
        backoff: Wait schedule between attempts
        retryable_codes: Codes worth another attempt; anything else fails at once
        max_elapsed: Seconds after which no new attempt starts
        on_retry: Hook called as (attempt, code, delay) before each wait

    Example:
        >>> policy = RetryPolicy(
        ...     max_attempts=3,
        ...     backoff=ConstantBackoff(2.0),
        ...     retryable_codes=frozenset({ErrorCode.TRANSIENT}),
        ... )
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        validate_default=True,
        extra="forbid",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    backoff: Backoff = Field(default_factory=ConstantBackoff, repr=False)
    retryable_codes: frozenset[ErrorCode] = DEFAULT_RETRYABLE
    max_elapsed: PositiveFloat | None = None
    on_retry: Callable[[int, ErrorCode, float], None] | None = Field(default=None, exclude=True, repr=False)

    @field_validator("retryable_codes", mode="before")
    @classmethod
    def _normalize_codes(cls, v: frozenset[ErrorCode] | set[str] | list[str] | tuple[str, ...]) -> frozenset[ErrorCode]:
        """Allow codes by name, e.g. from settings."""
        return frozenset(ErrorCode(c) if isinstance(c, str) else c for c in v)

    @field_serializer("retryable_codes")
    def _serialize_codes(self, v: frozenset[ErrorCode]) -> list[str]:
        return sorted(c.value for c in v)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        """True when a failure can never be retried."""
        return self.max_attempts == 1 or not self.retryable_codes

    def should_retry(self, code: ErrorCode | str, attempt: int) -> bool:
        """Determine if another attempt should be made.

        Args:
            code: Error code from the failed attempt
            attempt: 0-indexed number of the attempt that just failed
        """
        if attempt + 1 >= self.max_attempts:
            return False
        return ErrorCode(code) in self.retryable_codes

    def get_delay(self, attempt: int) -> float:
        return self.backoff.delay(attempt)


NO_RETRY = RetryPolicy(max_attempts=1, retryable_codes=frozenset())


def execute_with_retry_sync(
    operation: Callable[[], T],
    policy: RetryPolicy,
    name: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Run operation under the retry policy, re-raising the last error when the budget is spent.

    Args:
        operation: Callable performing one attempt
        policy: Retry policy configuration
        name: Operation name for logging
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock used for the max_elapsed deadline
    """
    start = clock()
    attempt = 0

    while True:
        try:
            return operation()
        except SlogcloudError as e:
            if not policy.should_retry(e.code, attempt):
                raise
            delay = policy.get_delay(attempt)
            if policy.max_elapsed is not None and clock() - start + delay > policy.max_elapsed:
                logger.warning(f"[{name}] Deadline of {policy.max_elapsed:.1f}s reached after {attempt + 1} attempts")
                raise

            logger.warning(
                f"[{name}] Attempt {attempt + 1}/{policy.max_attempts} failed ({e.code}): {e}. "
                f"Retrying in {delay:.1f}s"
            )
            if policy.on_retry:
                policy.on_retry(attempt, e.code, delay)

            sleep(delay)
            attempt += 1
