"""Tear down what the bridge provisioned when the process is told to stop.

The signal handler only sets the shared stop event; the main thread notices,
lets the consumer finish its batch, then unsubscribes and deletes the queue.
"""

import logging
import signal
import threading

import click

from purge_bridge.errors import QueueServiceError
from purge_bridge.persist_base import PersistBase
from purge_bridge.queue_model_dto import QueueDescriptor, Subscription
from purge_bridge.subscription import SubscriptionManager

logger = logging.getLogger(__name__)

SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Waits for SIGINT/SIGTERM and reverses provisioning.

    The queue is only deleted when ``descriptor.owned`` is set; a queue
    supplied by URL belongs to someone else.
    """

    def __init__(
        self,
        queue_repo: PersistBase,
        subscriptions: SubscriptionManager | None,
        descriptor: QueueDescriptor,
        subscription: Subscription | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.queue_repo = queue_repo
        self.subscriptions = subscriptions
        self.descriptor = descriptor
        self.subscription = subscription
        self.stop_event = stop_event or threading.Event()
        self.received_signal: int | None = None

    def install(self, signals=SIGNALS) -> None:
        """Route the termination signals to the stop event. Must run in the main thread."""
        for sig in signals:
            signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        self.received_signal = signum
        logger.info("Received signal %s", signal.Signals(signum).name)
        self.stop_event.set()

    def wait(self, poll_interval: float = 0.5) -> None:
        """Block until the stop event is set."""
        while not self.stop_event.wait(poll_interval):
            pass

    def teardown(self) -> None:
        """Unsubscribe, then delete the queue if owned. Neither failure stops the other."""
        subscription_id = self.subscription.subscription_id if self.subscription else "none"
        click.echo(f"Terminating Queue: {self.descriptor.url} & Subscription: {subscription_id}")

        if self.subscription and self.subscriptions:
            self.subscriptions.unsubscribe(self.subscription)

        if not self.descriptor.owned:
            logger.info("Leaving externally managed queue %s in place", self.descriptor.url)
            return
        try:
            self.queue_repo.delete_queue(self.descriptor.url)
        except QueueServiceError as e:
            click.secho(f"Couldn't delete queue {self.descriptor.url} : Error : {e.error}", err=True, fg="red")
            logger.warning("Delete of queue %s failed: %s", self.descriptor.url, e)
