"""Tests for retry policy, backoff strategies and error classification."""

from __future__ import annotations

import pytest

from slogcloud.foundation.errors import (
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    ProvisioningError,
    TransientServiceError,
    classify_exception,
)
from slogcloud.runtime.retry import (
    NO_RETRY,
    ConstantBackoff,
    ExponentialBackoff,
    RetryPolicy,
    execute_with_retry_sync,
)


class Flaky:
    """Callable failing with the given errors before succeeding."""

    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def test_constant_backoff() -> None:
    assert [ConstantBackoff(2.0).delay(n) for n in range(3)] == [2.0, 2.0, 2.0]


def test_exponential_backoff_capped() -> None:
    backoff = ExponentialBackoff(base=0.5, max_delay=3.0, jitter=False)
    assert [backoff.delay(n) for n in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_exponential_backoff_jitter_bounds() -> None:
    backoff = ExponentialBackoff(base=1.0, jitter=True)
    assert all(0.5 <= backoff.delay(0) <= 1.5 for _ in range(100))


def test_retries_transient_then_succeeds() -> None:
    op = Flaky(TransientServiceError("throttled"), TransientServiceError("throttled"))
    sleeps: list[float] = []
    policy = RetryPolicy(max_attempts=3, backoff=ConstantBackoff(2.0))

    assert execute_with_retry_sync(op, policy, "op", sleep=sleeps.append) == "ok"
    assert op.calls == 3
    assert sleeps == [2.0, 2.0]


def test_reraises_last_error_when_exhausted() -> None:
    last = TransientServiceError("third")
    op = Flaky(TransientServiceError("first"), TransientServiceError("second"), last)

    with pytest.raises(TransientServiceError) as exc:
        execute_with_retry_sync(op, RetryPolicy(max_attempts=3), "op", sleep=lambda _: None)
    assert exc.value is last
    assert op.calls == 3


def test_non_retryable_propagates_immediately() -> None:
    op = Flaky(ConfigurationError("bad key"))
    with pytest.raises(ConfigurationError):
        execute_with_retry_sync(op, RetryPolicy(max_attempts=3), "op", sleep=lambda _: None)
    assert op.calls == 1


def test_retryable_codes_accept_strings() -> None:
    policy = RetryPolicy(retryable_codes=["TRANSIENT", "NOT_FOUND"])
    assert policy.retryable_codes == frozenset({ErrorCode.TRANSIENT, ErrorCode.NOT_FOUND})
    assert policy.should_retry("NOT_FOUND", 0)
    assert not policy.should_retry(ErrorCode.NOT_FOUND, 2)
    assert policy.model_dump()["retryable_codes"] == ["NOT_FOUND", "TRANSIENT"]


def test_on_retry_callback() -> None:
    seen: list[tuple[int, ErrorCode, float]] = []
    policy = RetryPolicy(max_attempts=2, backoff=ConstantBackoff(0.1), on_retry=lambda *a: seen.append(a))
    execute_with_retry_sync(Flaky(NotFoundError("x")), policy.model_copy(update={"retryable_codes": frozenset({ErrorCode.NOT_FOUND})}),
                            "op", sleep=lambda _: None)
    assert seen == [(0, ErrorCode.NOT_FOUND, 0.1)]


def test_no_retry_policy() -> None:
    assert NO_RETRY.is_disabled
    op = Flaky(TransientServiceError("x"))
    with pytest.raises(TransientServiceError):
        execute_with_retry_sync(op, NO_RETRY, "op")
    assert op.calls == 1


# ═════════════════════════════════════════════════════════════════════════════
# Error model
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(("exc", "expected"), [
    (TimeoutError("timed out"), ErrorCode.TRANSIENT),
    (ConnectionResetError("connection reset"), ErrorCode.TRANSIENT),
    (ValueError("invalid log group name"), ErrorCode.PERMANENT),
    (RuntimeError("something odd"), ErrorCode.UNKNOWN),
    (NotFoundError("gone"), ErrorCode.NOT_FOUND),
])
def test_classify_exception(exc: Exception, expected: ErrorCode) -> None:
    assert classify_exception(exc) == expected


def test_wrapped_error_keeps_code_and_text() -> None:
    cause = TransientServiceError("throttled", operation="create_log_stream")
    wrapped = ProvisioningError.from_exc(cause, operation="provision", context="stream")

    assert wrapped.code == ErrorCode.TRANSIENT
    assert wrapped.is_retryable
    assert str(wrapped) == "provision: stream: create_log_stream: throttled"


def test_error_model_from_exception_without_text() -> None:
    err = ConfigurationError(KeyError())
    assert err.error.message == "KeyError"
    assert err.code == ErrorCode.CONFIGURATION
