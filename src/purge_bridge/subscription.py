"""Bind the queue to the notification topic, and unbind it on shutdown."""

import logging

import click

from purge_bridge.errors import SubscriptionError, TopicServiceError
from purge_bridge.persist_base import TopicBase
from purge_bridge.queue_model_dto import QueueDescriptor, Subscription

logger = logging.getLogger(__name__)

PROTOCOL = "sqs"


class SubscriptionManager:
    """Subscribes the queue (by ARN or by URL) to the topic."""

    def __init__(self, topic_repo: TopicBase, endpoint_kind: str = "arn") -> None:
        if endpoint_kind not in ("arn", "url"):
            raise ValueError(f"Invalid endpoint kind: {endpoint_kind}")
        self.topic_repo = topic_repo
        self.endpoint_kind = endpoint_kind

    def endpoint_for(self, descriptor: QueueDescriptor) -> str:
        if self.endpoint_kind == "url":
            return descriptor.url
        if not descriptor.arn:
            raise SubscriptionError(f"Queue {descriptor.url} has no resolved ARN to subscribe with")
        return descriptor.arn

    def subscribe(self, descriptor: QueueDescriptor, topic_arn: str) -> Subscription:
        """Subscribe the queue to topic_arn. Failure is fatal to the caller."""
        endpoint = self.endpoint_for(descriptor)
        try:
            subscription_id = self.topic_repo.subscribe(topic_arn, endpoint, protocol=PROTOCOL)
        except TopicServiceError as e:
            raise SubscriptionError(f"Couldn't subscribe to topic {topic_arn}. {e}") from e
        logger.info("Subscribed %s to %s as %s", endpoint, topic_arn, subscription_id)
        return Subscription(subscription_id=subscription_id, topic_arn=topic_arn, endpoint=endpoint, protocol=PROTOCOL)

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove the subscription. Failures are reported, never raised."""
        try:
            self.topic_repo.unsubscribe(subscription.subscription_id)
        except TopicServiceError as e:
            click.secho(
                f"Couldn't unsubscribe subscription {subscription.subscription_id} : Error : {e.error}",
                err=True,
                fg="red",
            )
            logger.warning("Unsubscribe of %s failed: %s", subscription.subscription_id, e)
            return False
        logger.info("Unsubscribed %s", subscription.subscription_id)
        return True
