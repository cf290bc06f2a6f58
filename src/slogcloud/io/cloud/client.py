"""CloudWatch Logs client: thin typed wrapper over the four remote operations.

Every botocore failure is translated into the slogcloud error taxonomy so that
callers decide on retries by ErrorCode alone:

    ResourceNotFoundException        -> NotFoundError
    ResourceAlreadyExistsException   -> AlreadyExistsError
    throttling / 5xx / timeouts      -> TransientServiceError
    bad or missing credentials       -> ConfigurationError
    everything else                  -> PermanentServiceError
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Self, TypedDict, runtime_checkable

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from slogcloud.foundation.errors import (
    AlreadyExistsError,
    ConfigurationError,
    ErrorCode,
    JsonDict,
    NotFoundError,
    PermanentServiceError,
    SlogcloudError,
    TransientServiceError,
    classify_exception,
)

if TYPE_CHECKING:
    from botocore.client import BaseClient

logger = logging.getLogger("slogcloud.client")


class InputLogEvent(TypedDict):
    """One event of a PutLogEvents call."""
    timestamp: int
    message: str


@runtime_checkable
class LogServiceClient(Protocol):
    """Protocol for the remote log-ingestion service.

    Implementations must be safe for concurrent use and raise SlogcloudError
    subclasses only.
    """

    def describe_log_group(self, name: str) -> JsonDict:
        """Return the group description, raising NotFoundError when absent."""
        ...

    def create_log_group(self, name: str) -> None: ...
    def create_log_stream(self, group_name: str, stream_name: str) -> None: ...
    def put_log_events(self, group_name: str, stream_name: str, events: Sequence[InputLogEvent]) -> JsonDict: ...


# ─────────────────────────────────────────────────────────────────────────────
# Error Translation
# ─────────────────────────────────────────────────────────────────────────────

_SERVICE_CODES: dict[str, type[SlogcloudError]] = {
    "ResourceNotFoundException": NotFoundError,
    "ResourceAlreadyExistsException": AlreadyExistsError,
    "ThrottlingException": TransientServiceError,
    "TooManyRequestsException": TransientServiceError,
    "ServiceUnavailableException": TransientServiceError,
    "RequestTimeout": TransientServiceError,
    "RequestTimeoutException": TransientServiceError,
    "InternalFailure": TransientServiceError,
    "OperationAbortedException": TransientServiceError,
    "UnrecognizedClientException": ConfigurationError,
    "InvalidSignatureException": ConfigurationError,
    "InvalidClientTokenId": ConfigurationError,
    "IncompleteSignature": ConfigurationError,
    "MissingAuthenticationToken": ConfigurationError,
    "ExpiredTokenException": ConfigurationError,
}

_TRANSIENT_EXCEPTIONS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, ConnectionClosedError)
_CONFIG_EXCEPTIONS = (NoCredentialsError, PartialCredentialsError, NoRegionError)

_CODE_CLASSES: dict[ErrorCode, type[SlogcloudError]] = {
    ErrorCode.NOT_FOUND: NotFoundError,
    ErrorCode.ALREADY_EXISTS: AlreadyExistsError,
    ErrorCode.TRANSIENT: TransientServiceError,
    ErrorCode.CONFIGURATION: ConfigurationError,
}


def translate_error(exc: Exception, operation: str) -> SlogcloudError:
    """Map a botocore exception onto the slogcloud taxonomy."""
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        code = err.get("Code", "")
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        cls = _SERVICE_CODES.get(code) or (TransientServiceError if status >= 500 else PermanentServiceError)
        return cls(err.get("Message") or code or str(exc), operation=operation, details=code or None)
    if isinstance(exc, _TRANSIENT_EXCEPTIONS):
        return TransientServiceError(exc, operation=operation)
    if isinstance(exc, _CONFIG_EXCEPTIONS):
        return ConfigurationError(exc, operation=operation)
    code = classify_exception(exc)
    return _CODE_CLASSES.get(code, PermanentServiceError)(exc, operation=operation)


# ─────────────────────────────────────────────────────────────────────────────
# boto3 Implementation
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class CloudWatchLogsClient:
    """LogServiceClient backed by boto3's ``logs`` client.

    The SDK's own retry layer is disabled (one attempt per call) so that retry
    budgets are owned by the provisioner; per-call timeouts bound every
    network round trip.

    Args:
        client: A boto3 CloudWatch Logs client
    """

    client: BaseClient = field(repr=False)

    @classmethod
    def from_credentials(
        cls,
        region: str,
        access_key: str | None = None,
        secret_key: str | None = None,
        *,
        endpoint_url: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
    ) -> Self:
        """Build a client from static keys, or from the default credential chain when both are omitted.

        Raises:
            ConfigurationError: region missing or invalid, or only one key given
        """
        if not region:
            raise ConfigurationError("region is required", operation="configure")
        if bool(access_key) != bool(secret_key):
            raise ConfigurationError("access key and secret key must be given together", operation="configure")

        config = Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        try:
            session = boto3.Session(
                aws_access_key_id=access_key or None,
                aws_secret_access_key=secret_key or None,
                region_name=region,
            )
            client = session.client("logs", endpoint_url=endpoint_url, config=config)
        except (BotoCoreError, ValueError) as e:
            raise ConfigurationError(e, operation="configure") from e
        return cls(client)

    def _call(self, operation: str, **params: Any) -> JsonDict:
        try:
            return getattr(self.client, operation)(**params)
        except (BotoCoreError, ClientError) as e:
            err = translate_error(e, operation)
            logger.debug(f"[{operation}] {err.code}: {err}")
            raise err from e

    def describe_log_group(self, name: str) -> JsonDict:
        params: JsonDict = {"logGroupNamePrefix": name}
        while True:
            page = self._call("describe_log_groups", **params)
            for group in page.get("logGroups", []):
                if group.get("logGroupName") == name:
                    return group
            if not (token := page.get("nextToken")):
                raise NotFoundError(f"log group {name!r} does not exist", operation="describe_log_groups")
            params["nextToken"] = token

    def create_log_group(self, name: str) -> None:
        self._call("create_log_group", logGroupName=name)

    def create_log_stream(self, group_name: str, stream_name: str) -> None:
        self._call("create_log_stream", logGroupName=group_name, logStreamName=stream_name)

    def put_log_events(self, group_name: str, stream_name: str, events: Sequence[InputLogEvent]) -> JsonDict:
        response = self._call(
            "put_log_events",
            logGroupName=group_name,
            logStreamName=stream_name,
            logEvents=list(events),
        )
        if rejected := response.get("rejectedLogEventsInfo"):
            raise PermanentServiceError(
                "log events rejected by the service",
                operation="put_log_events",
                details=", ".join(f"{k}={v}" for k, v in sorted(rejected.items())),
            )
        return response
