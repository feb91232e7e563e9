"""Resolve or create the queue that receives topic notifications.

The queue is looked up by name first. When it does not exist it is created
with a short retention window and an access policy that only lets the topic
send into it, then looked up again by name: the create response is not
trusted while the queue service catches up.
"""

import json
import logging
import time

from purge_bridge.errors import ProvisioningError, QueueNotFoundError, QueueServiceError
from purge_bridge.persist_base import PersistBase
from purge_bridge.queue_model_dto import QueueDescriptor

logger = logging.getLogger(__name__)


def parse_arn(arn: str) -> dict[str, str]:
    """Split an ARN into partition, service, region, account and resource."""
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        raise ValueError(f"Invalid ARN: {arn}")
    return dict(zip(("prefix", "partition", "service", "region", "account", "resource"), parts))


def queue_arn(region: str, account_id: str, queue_name: str, partition: str = "aws") -> str:
    return f"arn:{partition}:sqs:{region}:{account_id}:{queue_name}"


class QueueProvisioner:
    """Idempotently provisions the bridge's queue.

    Args:
        queue_repo: Queue backend.
        region: Region the queue lives in.
        account_id: Account owning the queue; taken from the topic ARN when None.
        retention_seconds: MessageRetentionPeriod of created queues.
        max_attempts: Resolve attempts per call, including the first one.
        retry_delay: Seconds to wait before re-resolving a queue that is not visible yet.
    """

    def __init__(
        self,
        queue_repo: PersistBase,
        region: str,
        account_id: str | None = None,
        retention_seconds: int = 3600,
        max_attempts: int = 5,
        retry_delay: float = 1.0,
        sleep=time.sleep,
    ) -> None:
        self.queue_repo = queue_repo
        self.region = region
        self.account_id = account_id
        self.retention_seconds = retention_seconds
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def _account_for(self, topic_arn: str) -> str:
        if self.account_id:
            return self.account_id
        try:
            return parse_arn(topic_arn)["account"]
        except ValueError as e:
            raise ProvisioningError(f"No account id configured and {e}") from e

    def build_policy(self, queue_name: str, topic_arn: str) -> str:
        """Return the queue policy JSON allowing only topic_arn to send messages."""
        resource = queue_arn(self.region, self._account_for(topic_arn), queue_name)
        policy = {
            "Version": "2012-10-17",
            "Id": f"{resource}/SQSDefaultPolicy",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Sid": f"Sid{time.time_ns() // 1_000_000}",
                    "Principal": {"AWS": "*"},
                    "Action": "SQS:SendMessage",
                    "Resource": resource,
                    "Condition": {"ArnEquals": {"aws:SourceArn": topic_arn}},
                }
            ],
        }
        return json.dumps(policy)

    def queue_attributes(self, queue_name: str, topic_arn: str) -> dict[str, str]:
        return {
            "DelaySeconds": "0",
            "MessageRetentionPeriod": str(self.retention_seconds),
            "Policy": self.build_policy(queue_name, topic_arn),
        }

    def resolve_or_create_queue(self, queue_name: str, topic_arn: str) -> QueueDescriptor:
        """Return the descriptor of queue_name, creating the queue if it does not exist.

        Raises:
            ProvisioningError: on a permanent service error, or when the queue
                is still not resolvable after max_attempts.
        """
        created = False
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                url = self.queue_repo.get_queue_url(queue_name)
                logger.info("Resolved queue %s to %s", queue_name, url)
                return QueueDescriptor(name=queue_name, url=url, owned=True)
            except QueueNotFoundError as e:
                last_error = e
                if not created:
                    logger.info("Queue %s does not exist, creating it", queue_name)
                    try:
                        self.queue_repo.create_queue(queue_name, self.queue_attributes(queue_name, topic_arn))
                    except QueueServiceError as create_error:
                        raise ProvisioningError(f"Unable to create queue {queue_name!r}. {create_error}") from create_error
                    created = True
                    continue
                logger.info("Queue %s not visible yet (attempt %d/%d)", queue_name, attempt, self.max_attempts)
            except QueueServiceError as e:
                if not e.retryable:
                    raise ProvisioningError(f"Unable to resolve queue {queue_name!r}, {e}") from e
                last_error = e
                logger.warning("Retryable error resolving queue %s (attempt %d/%d): %s", queue_name, attempt, self.max_attempts, e)
            if attempt < self.max_attempts:
                self.sleep(self.retry_delay)
        raise ProvisioningError(
            f"Unable to resolve queue {queue_name!r} after {self.max_attempts} attempts: {last_error}"
        )

    def resolve_arn(self, descriptor: QueueDescriptor) -> QueueDescriptor:
        """Return descriptor with its ARN attribute resolved."""
        if descriptor.arn:
            return descriptor
        try:
            arn = self.queue_repo.get_queue_arn(descriptor.url)
        except QueueServiceError as e:
            raise ProvisioningError(f"Couldn't get queue attributes. {e}") from e
        if not arn:
            raise ProvisioningError(f"Got no ARN for queue {descriptor.url}")
        return descriptor.with_arn(arn)
