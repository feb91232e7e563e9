"""Error types raised by the purge bridge.

Service errors carry a ``retryable`` flag: transport failures and throttling
are worth another iteration, everything else is a permanent condition that
ends the process.
"""

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

RETRYABLE_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalError",
        "InternalFailure",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

RETRYABLE_TRANSPORT_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

QUEUE_NOT_FOUND_CODES = frozenset(
    {
        "QueueDoesNotExist",
        "AWS.SimpleQueueService.NonExistentQueue",
    }
)


class BridgeError(Exception):
    """Base class for all purge bridge errors."""


class ConfigurationError(BridgeError):
    """Required configuration is missing or inconsistent."""


class ServiceError(BridgeError):
    """A call to an AWS service failed."""

    def __init__(self, action: str, error: Exception | str, retryable: bool = False) -> None:
        self.action = action
        self.error = error
        self.retryable = retryable
        super().__init__(f"{action} failed: {error}")


class QueueServiceError(ServiceError):
    """A call to the queue service failed."""


class QueueNotFoundError(QueueServiceError):
    """The named queue does not exist."""


class TopicServiceError(ServiceError):
    """A call to the topic service failed."""


class ProvisioningError(BridgeError):
    """The queue could not be resolved, created or described."""


class SubscriptionError(BridgeError):
    """The queue could not be subscribed to the topic."""


class EnvelopeError(BridgeError):
    """A message body is not a notification envelope."""

    def __init__(self, body: str, reason: str) -> None:
        self.body = body
        self.reason = reason
        super().__init__(f"Unable to parse json {body}")


class PurgeError(BridgeError):
    """A purge request could not be built or sent."""

    def __init__(self, key: str, error: Exception) -> None:
        self.key = key
        self.error = error
        super().__init__(f"Unable to purge {key} {error}")


def error_code(exc: Exception) -> str | None:
    """Return the service error code of a ClientError, None for anything else."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def is_retryable(exc: Exception) -> bool:
    """Return True when the botocore error is a transient transport or throttling failure."""
    if isinstance(exc, ClientError):
        return error_code(exc) in RETRYABLE_CODES
    if isinstance(exc, BotoCoreError):
        return isinstance(exc, RETRYABLE_TRANSPORT_ERRORS)
    return False
