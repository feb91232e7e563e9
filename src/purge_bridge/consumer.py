"""Long-poll the queue and hand each batch to the purge dispatcher.

Every non-empty batch is deleted from the queue in one call before any purge
is sent, so a failed purge is never redelivered.
"""

import logging
import threading

import click

from purge_bridge.dispatcher import PurgeDispatcher
from purge_bridge.errors import QueueServiceError
from purge_bridge.persist_base import PersistBase
from purge_bridge.queue_model_dto import QueueDescriptor

logger = logging.getLogger(__name__)

MAX_MESSAGES = 10


class ConsumptionLoop:
    """Receive, delete, dispatch; until the stop event is set or a permanent error occurs.

    A permanent queue error, or any error other than a queue error, is kept in
    ``failure``. The stop event is set whenever the loop ends so whoever waits
    on it can exit.
    """

    def __init__(
        self,
        queue_repo: PersistBase,
        descriptor: QueueDescriptor,
        dispatcher: PurgeDispatcher,
        wait_time_seconds: int = 20,
        retry_delay: float = 1.0,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.queue_repo = queue_repo
        self.descriptor = descriptor
        self.dispatcher = dispatcher
        self.wait_time_seconds = wait_time_seconds
        self.retry_delay = retry_delay
        self.stop_event = stop_event or threading.Event()
        self.failure: Exception | None = None

    def poll_once(self) -> int:
        """Run one receive-delete-dispatch iteration. Returns the number of messages received."""
        messages = self.queue_repo.receive(
            self.descriptor.url,
            max_messages=MAX_MESSAGES,
            wait_time_seconds=self.wait_time_seconds,
        )
        if not messages:
            return 0

        click.echo(f"Received {len(messages)} messages.")
        failed = self.queue_repo.delete_batch(self.descriptor.url, messages)
        if failed:
            click.secho(f"Queue failed to delete messages {', '.join(failed)}", err=True, fg="yellow")
        self.dispatcher.dispatch(messages)
        return len(messages)

    def run(self) -> None:
        logger.info("Consuming from %s", self.descriptor.url)
        try:
            while not self.stop_event.is_set():
                try:
                    self.poll_once()
                except QueueServiceError as e:
                    if not e.retryable:
                        click.secho(f"Unable to consume from queue {self.descriptor.url}, {e}", err=True, fg="red")
                        self.failure = e
                        break
                    click.secho(f"Queue error, retrying: {e}", err=True, fg="yellow")
                    self.stop_event.wait(self.retry_delay)
        except Exception as e:
            logger.exception("Consumer for %s crashed", self.descriptor.url)
            click.secho(f"Consumer stopped on unexpected error: {e}", err=True, fg="red")
            self.failure = e
        finally:
            # whoever waits on the event must wake up however the loop ends
            self.stop_event.set()
        logger.info("Stopped consuming from %s", self.descriptor.url)
