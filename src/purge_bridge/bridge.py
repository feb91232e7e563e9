"""Wire the queue, the topic and the cache server together.

start() provisions the queue and the subscription once; serve() runs the
consumption loop in a background thread and waits in the calling (main)
thread for a termination signal or a fatal queue error.
"""

import logging
import threading

from config import Settings
from purge_bridge.consumer import MAX_MESSAGES, ConsumptionLoop
from purge_bridge.dispatcher import PurgeDispatcher
from purge_bridge.errors import ConfigurationError
from purge_bridge.persist_base import PersistBase, TopicBase
from purge_bridge.provisioner import QueueProvisioner
from purge_bridge.queue_model_dto import QueueDescriptor, Subscription
from purge_bridge.shutdown import ShutdownCoordinator
from purge_bridge.subscription import SubscriptionManager

logger = logging.getLogger(__name__)

# grace on top of the long poll and a full batch of purges
JOIN_GRACE_SECONDS = 5.0


class PurgeBridge:
    """The running bridge: one queue, one subscription, one cache server."""

    def __init__(self, settings: Settings, queue_repo: PersistBase, topic_repo: TopicBase, session=None) -> None:
        self.settings = settings
        self.queue_repo = queue_repo
        self.topic_repo = topic_repo
        self.stop_event = threading.Event()
        self.provisioner = QueueProvisioner(
            queue_repo,
            region=settings.region,
            account_id=settings.account_id,
            retention_seconds=settings.retention_seconds,
            max_attempts=settings.provision_attempts,
            retry_delay=settings.provision_retry_delay,
        )
        self.subscriptions = SubscriptionManager(topic_repo, endpoint_kind=settings.subscribe_endpoint)
        self.dispatcher = PurgeDispatcher(
            settings.server_url,
            method=settings.purge_method,
            timeout=settings.purge_timeout,
            session=session,
        )
        self.descriptor: QueueDescriptor | None = None
        self.subscription: Subscription | None = None

    def validate(self) -> None:
        """Raise ConfigurationError when the settings cannot drive a bridge."""
        errors = []
        if not self.settings.queue_url:
            if not self.settings.queue_name:
                errors.append("Queue name required")
            if not self.settings.topic_arn:
                errors.append("SNS Topic ARN is required")
        if errors:
            raise ConfigurationError("; ".join(errors))

    def start(self) -> QueueDescriptor:
        """Provision the queue and subscribe it to the topic. Errors here are fatal."""
        self.validate()
        if self.settings.queue_url:
            self.descriptor = QueueDescriptor(name=self.settings.queue_name, url=self.settings.queue_url, owned=False)
            logger.info("Using externally managed queue %s", self.descriptor.url)
            return self.descriptor

        descriptor = self.provisioner.resolve_or_create_queue(self.settings.queue_name, self.settings.topic_arn)
        if self.settings.subscribe_endpoint == "arn":
            descriptor = self.provisioner.resolve_arn(descriptor)
        self.descriptor = descriptor
        self.subscription = self.subscriptions.subscribe(descriptor, self.settings.topic_arn)
        return descriptor

    def build_consumer(self) -> ConsumptionLoop:
        return ConsumptionLoop(
            self.queue_repo,
            self.descriptor,
            self.dispatcher,
            wait_time_seconds=self.settings.wait_time_seconds,
            retry_delay=self.settings.retry_delay,
            stop_event=self.stop_event,
        )

    def build_coordinator(self) -> ShutdownCoordinator:
        return ShutdownCoordinator(
            self.queue_repo,
            self.subscriptions,
            self.descriptor,
            subscription=self.subscription,
            stop_event=self.stop_event,
        )

    def join_timeout(self) -> float:
        """Longest the main thread waits for the consumer after a stop request.

        Covers one long poll plus a full batch of purges that each run to the
        purge timeout.
        """
        return self.settings.wait_time_seconds + MAX_MESSAGES * self.settings.purge_timeout + JOIN_GRACE_SECONDS

    def serve(self, install_signals: bool = True) -> ConsumptionLoop:
        """Consume until stopped, then tear down. Returns the finished consumer.

        When the consumer stopped on a permanent queue error its ``failure``
        is set and no teardown runs.
        """
        if self.descriptor is None:
            raise RuntimeError("start() must provision the queue before serve()")
        consumer = self.build_consumer()
        coordinator = self.build_coordinator()
        if install_signals:
            coordinator.install()

        thread = threading.Thread(target=consumer.run, name="purge-consumer", daemon=True)
        thread.start()
        coordinator.wait()
        thread.join(timeout=self.join_timeout())
        if thread.is_alive():
            logger.warning("Consumer still busy after stop request, tearing down anyway")

        if consumer.failure is None:
            coordinator.teardown()
        return consumer
