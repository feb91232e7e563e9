"""SQS-backed queue persistence.

Wraps a boto3 SQS client and translates botocore failures into the bridge's
typed queue errors.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from purge_bridge.errors import (
    QUEUE_NOT_FOUND_CODES,
    QueueNotFoundError,
    QueueServiceError,
    error_code,
    is_retryable,
)
from purge_bridge.persist_base import PersistBase
from purge_bridge.queue_model_dto import ReceivedMessage

logger = logging.getLogger(__name__)


def queue_error(action: str, exc: Exception) -> QueueServiceError:
    """Map a botocore exception to a QueueServiceError."""
    if error_code(exc) in QUEUE_NOT_FOUND_CODES:
        return QueueNotFoundError(action, exc)
    return QueueServiceError(action, exc, retryable=is_retryable(exc))


class PersistSQS(PersistBase):
    """Queue persistence implementation using Amazon SQS.

    The client is built once by the caller (see aws_client.get_sqs_client)
    and shared by every call.
    """

    def __init__(self, client) -> None:
        self.client = client

    def get_queue_url(self, queue_name: str) -> str:
        try:
            response = self.client.get_queue_url(QueueName=queue_name)
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Resolve queue {queue_name}", e) from e
        return response["QueueUrl"]

    def create_queue(self, queue_name: str, attributes: dict[str, str] | None = None) -> str:
        try:
            response = self.client.create_queue(QueueName=queue_name, Attributes=attributes or {})
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Create queue {queue_name}", e) from e
        logger.info("Created queue %s", queue_name)
        return response.get("QueueUrl", "")

    def get_queue_arn(self, queue_url: str) -> str | None:
        try:
            response = self.client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=["QueueArn"])
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Get attributes of {queue_url}", e) from e
        return response.get("Attributes", {}).get("QueueArn")

    def receive(self, queue_url: str, max_messages: int = 10, wait_time_seconds: int = 20) -> list[ReceivedMessage]:
        try:
            response = self.client.receive_message(
                QueueUrl=queue_url,
                AttributeNames=["SentTimestamp"],
                MaxNumberOfMessages=max_messages,
                MessageAttributeNames=["All"],
                WaitTimeSeconds=wait_time_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Receive from {queue_url}", e) from e
        return [ReceivedMessage.from_sqs(m) for m in response.get("Messages", [])]

    def delete_batch(self, queue_url: str, messages: list[ReceivedMessage]) -> list[str]:
        if not messages:
            return []
        entries = [{"Id": m.message_id, "ReceiptHandle": m.receipt_handle} for m in messages]
        try:
            response = self.client.delete_message_batch(QueueUrl=queue_url, Entries=entries)
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Delete {len(entries)} messages from {queue_url}", e) from e
        failed = [f["Id"] for f in response.get("Failed", [])]
        if failed:
            logger.warning("Queue did not delete %d of %d messages: %s", len(failed), len(entries), failed)
        return failed

    def delete_queue(self, queue_url: str) -> None:
        try:
            self.client.delete_queue(QueueUrl=queue_url)
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Delete queue {queue_url}", e) from e
        logger.info("Deleted queue %s", queue_url)

    def purge_queue(self, queue_url: str) -> None:
        try:
            self.client.purge_queue(QueueUrl=queue_url)
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Purge queue {queue_url}", e) from e

    def metrics(self, queue_url: str) -> dict:
        try:
            response = self.client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=["All"])
        except (BotoCoreError, ClientError) as e:
            raise queue_error(f"Get attributes of {queue_url}", e) from e
        return response.get("Attributes", {})
