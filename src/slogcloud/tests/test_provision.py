"""Tests for log group / stream provisioning."""

from __future__ import annotations

import re
from datetime import UTC, datetime

import pytest

from slogcloud.foundation.config import ProvisionSettings
from slogcloud.foundation.errors import (
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    PermanentServiceError,
    ProvisioningError,
    TransientServiceError,
)
from slogcloud.foundation.testing import FakeLogService
from slogcloud.io.cloud import Provisioner, default_stream_policy, generate_stream_name

STREAM_PATTERN = re.compile(
    r"^slogcloud-stream-\d{8}T\d{6}-[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


class FakeClock:
    """Monotonic clock advanced only by the recorded sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_provisioner(fake: FakeLogService, clock: FakeClock, **kw: object) -> Provisioner:
    return Provisioner(fake, sleep=clock.sleep, clock=clock, **kw)  # type: ignore[arg-type]


# ═════════════════════════════════════════════════════════════════════════════
# Group handling
# ═════════════════════════════════════════════════════════════════════════════


def test_missing_group_scenario(clock: FakeClock) -> None:
    """Group absent: describe -> create once -> stream with the generated name -> bound destination."""
    fake = FakeLogService()
    dest = make_provisioner(fake, clock).provision("app-logs")

    assert dest.group_name == "app-logs"
    assert STREAM_PATTERN.match(dest.stream_name)
    assert fake.call_count("create_log_group") == 1
    assert fake.calls_to("create_log_stream")[0].args == ("app-logs", dest.stream_name)
    assert dest.stream_name in fake.streams["app-logs"]
    assert dest.client is fake


def test_existing_group_is_not_recreated(clock: FakeClock) -> None:
    """Provisioning twice against an existing group never creates it."""
    fake = FakeLogService(groups={"app-logs"})
    provisioner = make_provisioner(fake, clock)

    first = provisioner.provision("app-logs")
    second = provisioner.provision("app-logs")

    assert fake.call_count("create_log_group") == 0
    assert fake.call_count("create_log_stream") == 2
    assert first.stream_name != second.stream_name
    assert clock.sleeps == []


def test_second_provision_skips_group_creation(clock: FakeClock) -> None:
    fake = FakeLogService()
    provisioner = make_provisioner(fake, clock)
    provisioner.provision("app-logs")
    provisioner.provision("app-logs")
    assert fake.call_count("create_log_group") == 1


def test_describe_failure_aborts_without_create(clock: FakeClock) -> None:
    """Only NotFound means absent; any other describe error aborts."""
    fake = FakeLogService().fail("describe_log_group", PermanentServiceError("access denied"))

    with pytest.raises(ProvisioningError) as exc:
        make_provisioner(fake, clock).provision("app-logs")

    assert exc.value.code == ErrorCode.PERMANENT
    assert fake.call_count("create_log_group") == 0
    assert fake.call_count("create_log_stream") == 0


def test_group_created_concurrently_is_success(clock: FakeClock) -> None:
    """Another process created the group between our lookup and our create."""
    fake = FakeLogService(groups={"app-logs"}).hide("app-logs", describes=1)
    dest = make_provisioner(fake, clock).provision("app-logs")

    assert fake.call_count("create_log_group") == 1
    assert dest.stream_name in fake.streams["app-logs"]


def test_waits_until_new_group_visible(clock: FakeClock) -> None:
    """A new group hidden for two describes is polled until it shows up."""
    fake = FakeLogService(hidden_describes=2)
    dest = make_provisioner(fake, clock).provision("app-logs")

    # initial lookup + 3 visibility polls (2 hidden, 1 visible)
    assert fake.call_count("describe_log_group") == 4
    assert clock.sleeps == [0.25, 0.5]
    assert dest.stream_name in fake.streams["app-logs"]


def test_visibility_budget_is_bounded(clock: FakeClock) -> None:
    fake = FakeLogService(hidden_describes=100)
    make_provisioner(fake, clock, visibility_timeout=2.0).provision("app-logs")

    # 0.25 + 0.5 + 1.0, the next 1.0 poll would overrun the 2s budget
    assert clock.sleeps == [0.25, 0.5, 1.0]
    assert fake.call_count("describe_log_group") == 5
    assert fake.call_count("create_log_stream") == 1


def test_transient_error_while_polling_keeps_polling(clock: FakeClock) -> None:
    fake = FakeLogService().fail(
        "describe_log_group", NotFoundError("absent"), TransientServiceError("throttled")
    )
    dest = make_provisioner(fake, clock).provision("app-logs")

    assert fake.call_count("describe_log_group") == 3
    assert clock.sleeps == [0.25]
    assert dest.stream_name in fake.streams["app-logs"]


def test_permanent_error_while_polling_aborts(clock: FakeClock) -> None:
    fake = FakeLogService().fail(
        "describe_log_group", NotFoundError("absent"), PermanentServiceError("access denied")
    )
    with pytest.raises(ProvisioningError) as exc:
        make_provisioner(fake, clock).provision("app-logs")

    assert exc.value.code == ErrorCode.PERMANENT
    assert fake.call_count("create_log_stream") == 0


def test_invalid_group_name_fails_before_network(clock: FakeClock) -> None:
    fake = FakeLogService()
    with pytest.raises(ConfigurationError):
        make_provisioner(fake, clock).provision("bad name with spaces")
    assert fake.calls == []


# ═════════════════════════════════════════════════════════════════════════════
# Stream creation retries
# ═════════════════════════════════════════════════════════════════════════════


def test_stream_succeeds_on_third_attempt(clock: FakeClock) -> None:
    fake = FakeLogService(groups={"app-logs"}).fail(
        "create_log_stream", TransientServiceError("throttled"), TransientServiceError("timeout")
    )
    dest = make_provisioner(fake, clock).provision("app-logs")

    assert fake.call_count("create_log_stream") == 3
    assert clock.sleeps == [2.0, 2.0]
    assert dest.stream_name in fake.streams["app-logs"]


def test_stream_retry_budget_exhausted(clock: FakeClock) -> None:
    fake = FakeLogService(groups={"app-logs"}).fail(
        "create_log_stream", *[TransientServiceError("throttled") for _ in range(5)]
    )
    with pytest.raises(ProvisioningError) as exc:
        make_provisioner(fake, clock).provision("app-logs")

    assert fake.call_count("create_log_stream") == 3
    assert exc.value.code == ErrorCode.TRANSIENT
    assert isinstance(exc.value.__cause__, TransientServiceError)
    assert "3 attempt" in str(exc.value)


def test_permanent_stream_error_not_retried(clock: FakeClock) -> None:
    fake = FakeLogService(groups={"app-logs"}).fail("create_log_stream", PermanentServiceError("limit exceeded"))
    with pytest.raises(ProvisioningError) as exc:
        make_provisioner(fake, clock).provision("app-logs")

    assert fake.call_count("create_log_stream") == 1
    assert exc.value.code == ErrorCode.PERMANENT
    assert clock.sleeps == []


def test_configuration_error_not_retried(clock: FakeClock) -> None:
    fake = FakeLogService(groups={"app-logs"}).fail("create_log_stream", ConfigurationError("bad signature"))
    with pytest.raises(ProvisioningError) as exc:
        make_provisioner(fake, clock).provision("app-logs")
    assert fake.call_count("create_log_stream") == 1
    assert exc.value.code == ErrorCode.CONFIGURATION


def test_already_exists_after_lost_response_is_success(clock: FakeClock) -> None:
    """A timeout whose request did land makes the retry see AlreadyExists."""
    fake = FakeLogService(groups={"app-logs"})
    original = fake.create_log_stream
    state = {"calls": 0}

    def flaky(group: str, stream: str) -> None:
        state["calls"] += 1
        original(group, stream)
        if state["calls"] == 1:
            raise TransientServiceError("read timeout")

    fake.create_log_stream = flaky  # type: ignore[method-assign]
    dest = make_provisioner(fake, clock).provision("app-logs")

    assert state["calls"] == 2
    assert dest.stream_name in fake.streams["app-logs"]


def test_deadline_stops_retries(clock: FakeClock) -> None:
    fake = FakeLogService(groups={"app-logs"}).fail(
        "create_log_stream", *[TransientServiceError("throttled") for _ in range(5)]
    )
    policy = default_stream_policy(attempts=5, delay=2.0, max_elapsed=3.0)
    with pytest.raises(ProvisioningError):
        make_provisioner(fake, clock, stream_policy=policy).provision("app-logs")
    assert fake.call_count("create_log_stream") == 2


def test_from_settings_uses_configured_budget(clock: FakeClock) -> None:
    settings = ProvisionSettings(stream_attempts=2, stream_retry_delay=0.5)
    fake = FakeLogService(groups={"app-logs"}).fail(
        "create_log_stream", *[TransientServiceError("throttled") for _ in range(3)]
    )
    provisioner = Provisioner.from_settings(fake, settings)
    provisioner.sleep, provisioner.clock = clock.sleep, clock

    with pytest.raises(ProvisioningError):
        provisioner.provision("app-logs")
    assert fake.call_count("create_log_stream") == 2
    assert clock.sleeps == [0.5]


# ═════════════════════════════════════════════════════════════════════════════
# Stream names
# ═════════════════════════════════════════════════════════════════════════════


def test_stream_names_unique_within_same_instant() -> None:
    now = datetime(2024, 1, 3, 10, 30, 45, tzinfo=UTC)
    names = {generate_stream_name(now=now) for _ in range(50)}
    assert len(names) == 50
    assert all(n.startswith("slogcloud-stream-20240103T103045-") for n in names)


def test_stream_prefix_validated() -> None:
    with pytest.raises(ConfigurationError):
        generate_stream_name("bad:prefix")
