"""Abstract bases for the queue and topic backends.

Defines the interface the bridge needs from the durable queue (resolve,
create, receive, delete) and from the notification topic (subscribe,
unsubscribe, publish). Implementations (PersistSQS, TopicSNS) talk to the
concrete services.
"""

from abc import ABC, abstractmethod

from purge_bridge.queue_model_dto import ReceivedMessage


class PersistBase(ABC):
    """Abstract base class for the queue backend.

    Implementations raise QueueNotFoundError when a queue name does not
    resolve, and QueueServiceError for every other service failure.
    """

    @abstractmethod
    def get_queue_url(self, queue_name: str) -> str:
        """Return the URL of the named queue."""
        pass

    @abstractmethod
    def create_queue(self, queue_name: str, attributes: dict[str, str] | None = None) -> str:
        """Create the queue with the given attributes. Returns the URL echoed by the service."""
        pass

    @abstractmethod
    def get_queue_arn(self, queue_url: str) -> str | None:
        """Return the queue's own ARN attribute, None if the service did not report one."""
        pass

    @abstractmethod
    def receive(self, queue_url: str, max_messages: int = 10, wait_time_seconds: int = 20) -> list[ReceivedMessage]:
        """Long-poll the queue. Returns an empty list when nothing arrived in time."""
        pass

    @abstractmethod
    def delete_batch(self, queue_url: str, messages: list[ReceivedMessage]) -> list[str]:
        """Delete the messages in one call. Returns the ids the service failed to delete."""
        pass

    @abstractmethod
    def delete_queue(self, queue_url: str) -> None:
        """Delete the queue and its messages."""
        pass

    @abstractmethod
    def purge_queue(self, queue_url: str) -> None:
        """Remove all messages from the queue."""
        pass

    @abstractmethod
    def metrics(self, queue_url: str) -> dict:
        """Return the queue attributes (message counts, retention, policy...)."""
        pass


class TopicBase(ABC):
    """Abstract base class for the notification topic backend."""

    @abstractmethod
    def subscribe(self, topic_arn: str, endpoint: str, protocol: str = "sqs") -> str:
        """Deliver the topic's notifications to endpoint. Returns the subscription id."""
        pass

    @abstractmethod
    def unsubscribe(self, subscription_id: str) -> None:
        """Remove the subscription."""
        pass

    @abstractmethod
    def publish(self, topic_arn: str, message: str, subject: str | None = None) -> str:
        """Publish a notification. Returns the message id."""
        pass
