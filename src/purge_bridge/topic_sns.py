"""SNS-backed notification topic."""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from purge_bridge.errors import TopicServiceError, is_retryable
from purge_bridge.persist_base import TopicBase

logger = logging.getLogger(__name__)


class TopicSNS(TopicBase):
    """Topic implementation using Amazon SNS."""

    def __init__(self, client) -> None:
        self.client = client

    def subscribe(self, topic_arn: str, endpoint: str, protocol: str = "sqs") -> str:
        try:
            response = self.client.subscribe(TopicArn=topic_arn, Protocol=protocol, Endpoint=endpoint)
        except (BotoCoreError, ClientError) as e:
            raise TopicServiceError(f"Subscribe {endpoint} to {topic_arn}", e, retryable=is_retryable(e)) from e
        return response["SubscriptionArn"]

    def unsubscribe(self, subscription_id: str) -> None:
        try:
            self.client.unsubscribe(SubscriptionArn=subscription_id)
        except (BotoCoreError, ClientError) as e:
            raise TopicServiceError(f"Unsubscribe {subscription_id}", e, retryable=is_retryable(e)) from e

    def publish(self, topic_arn: str, message: str, subject: str | None = None) -> str:
        params = {"TopicArn": topic_arn, "Message": message}
        if subject:
            params["Subject"] = subject
        try:
            response = self.client.publish(**params)
        except (BotoCoreError, ClientError) as e:
            raise TopicServiceError(f"Publish to {topic_arn}", e, retryable=is_retryable(e)) from e
        logger.debug("Published %r to %s", message, topic_arn)
        return response.get("MessageId", "")
