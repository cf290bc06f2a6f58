"""Destination provisioning: make sure a log group and a fresh stream exist.

Runs once per production logger, single-threaded, before any emission:

1. Look the group up by exact name; create it only on NotFoundError.
2. After a create, poll until the group is visible (bounded backoff).
3. Create a uniquely named stream, retrying transient failures.

Example:
    >>> provisioner = Provisioner(CloudWatchLogsClient.from_credentials("us-east-1"))
    >>> dest = provisioner.provision("app-logs")
    >>> dest.stream_name
    'slogcloud-stream-20240103T103045-9b2f...'
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable, Self

from slogcloud.foundation.config import DEFAULT_STREAM_PREFIX
from slogcloud.foundation.errors import (
    AlreadyExistsError,
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    ProvisioningError,
    SlogcloudError,
)
from slogcloud.runtime.retry import ConstantBackoff, ExponentialBackoff, RetryPolicy, execute_with_retry_sync

from .client import LogServiceClient

if TYPE_CHECKING:
    from slogcloud.foundation.config import ProvisionSettings
    from slogcloud.runtime.retry import Backoff

logger = logging.getLogger("slogcloud.provision")

# CloudWatch naming rules
_GROUP_NAME = re.compile(r"^[\w.\-/#]{1,512}$", re.ASCII)
_STREAM_FORBIDDEN = re.compile(r"[:*]")

# Worth another try in stream creation and the visibility poll: a new group may not be visible yet
STREAM_RETRYABLE: frozenset[ErrorCode] = frozenset({ErrorCode.TRANSIENT, ErrorCode.NOT_FOUND})


def validate_group_name(name: str) -> str:
    """Reject group names the service would refuse, before any network call."""
    if not _GROUP_NAME.match(name or ""):
        raise ConfigurationError(f"invalid log group name {name!r}", operation="provision")
    return name


def generate_stream_name(prefix: str = DEFAULT_STREAM_PREFIX, *, now: datetime | None = None) -> str:
    """Stream name unique per provisioning attempt: ``<prefix>-<YYYYMMDDTHHMMSS>-<uuid4>``."""
    if not prefix or _STREAM_FORBIDDEN.search(prefix):
        raise ConfigurationError(f"invalid stream prefix {prefix!r}", operation="provision")
    ts = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%S")
    return f"{prefix}-{ts}-{uuid.uuid4()}"


@dataclass(frozen=True, slots=True)
class LogDestination:
    """Provisioned group/stream pair bound to the client that created it. Immutable."""

    group_name: str
    stream_name: str
    client: LogServiceClient = field(repr=False, compare=False)


def default_stream_policy(attempts: int = 3, delay: float = 2.0, max_elapsed: float | None = None) -> RetryPolicy:
    """Fixed-delay policy for stream creation: ``attempts`` tries, ``delay`` seconds apart."""
    return RetryPolicy(
        max_attempts=attempts,
        backoff=ConstantBackoff(delay),
        retryable_codes=STREAM_RETRYABLE,
        max_elapsed=max_elapsed,
    )


@dataclass(slots=True)
class Provisioner:
    """Ensures a log group exists and creates one stream in it.

    Args:
        client: Remote log service client
        stream_prefix: Prefix of generated stream names
        stream_policy: Retry policy for stream creation
        visibility_timeout: Budget in seconds for polling a newly created group
        visibility_backoff: Delay schedule between visibility polls
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)
    """

    client: LogServiceClient
    stream_prefix: str = DEFAULT_STREAM_PREFIX
    stream_policy: RetryPolicy = field(default_factory=default_stream_policy)
    visibility_timeout: float = 2.0
    visibility_backoff: Backoff = field(default_factory=lambda: ExponentialBackoff(base=0.25, max_delay=1.0, jitter=False))
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def from_settings(cls, client: LogServiceClient, settings: ProvisionSettings, stream_prefix: str = DEFAULT_STREAM_PREFIX) -> Self:
        return cls(
            client=client,
            stream_prefix=stream_prefix,
            stream_policy=default_stream_policy(
                settings.stream_attempts, settings.stream_retry_delay, settings.max_elapsed
            ),
            visibility_timeout=settings.consistency_timeout,
            visibility_backoff=ExponentialBackoff(
                base=settings.consistency_poll, max_delay=max(settings.consistency_poll, 1.0), jitter=False
            ),
        )

    def provision(self, group_name: str) -> LogDestination:
        """Provision the destination.

        Raises:
            ConfigurationError: invalid group name or stream prefix
            ProvisioningError: any remote failure, wrapping the underlying error
        """
        validate_group_name(group_name)
        stream_name = generate_stream_name(self.stream_prefix)
        try:
            if self.ensure_group(group_name):
                self.wait_until_visible(group_name)
            attempts = self.create_stream(group_name, stream_name)
        except ProvisioningError:
            raise
        except SlogcloudError as e:
            raise ProvisioningError(e, operation=f"provision:{e.operation or 'unknown'}", code=e.code,
                                    details=e.error.details) from e

        logger.info(f"Provisioned log stream {group_name}/{stream_name} ({attempts} attempt(s))")
        return LogDestination(group_name, stream_name, self.client)

    def ensure_group(self, group_name: str) -> bool:
        """Create the group if absent. Returns True if this call (or a concurrent one) just created it."""
        try:
            self.client.describe_log_group(group_name)
            logger.debug(f"Log group {group_name} already exists")
            return False
        except NotFoundError:
            pass

        try:
            self.client.create_log_group(group_name)
            logger.info(f"Created log group {group_name}")
        except AlreadyExistsError:
            logger.debug(f"Log group {group_name} created concurrently")
        return True

    def wait_until_visible(self, group_name: str) -> bool:
        """Poll describe until the group shows up or the visibility budget is spent.

        NotFound and transient describe failures both mean "not visible yet";
        any other error aborts.
        """
        deadline = self.clock() + self.visibility_timeout
        attempt = 0
        while True:
            try:
                self.client.describe_log_group(group_name)
                return True
            except SlogcloudError as e:
                if e.code not in STREAM_RETRYABLE:
                    raise
                logger.debug(f"Log group {group_name} not visible yet ({e.code})")
            delay = self.visibility_backoff.delay(attempt)
            if self.clock() + delay > deadline:
                logger.warning(f"Log group {group_name} not visible after {self.visibility_timeout:.1f}s, continuing")
                return False
            self.sleep(delay)
            attempt += 1

    def create_stream(self, group_name: str, stream_name: str) -> int:
        """Create the stream under the retry policy. Returns the number of attempts made."""
        attempts = 0

        def attempt() -> None:
            nonlocal attempts
            attempts += 1
            try:
                self.client.create_log_stream(group_name, stream_name)
            except AlreadyExistsError:
                # An earlier attempt reached the service even though it reported failure
                if attempts == 1:
                    raise
                logger.debug(f"Log stream {stream_name} already created by attempt {attempts - 1}")

        try:
            execute_with_retry_sync(attempt, self.stream_policy, "create_log_stream", sleep=self.sleep, clock=self.clock)
        except SlogcloudError as e:
            raise ProvisioningError(
                f"failed to create log stream after {attempts} attempt(s): {e}",
                operation="provision:create_log_stream",
                code=e.code,
                details=e.error.details,
            ) from e
        return attempts
