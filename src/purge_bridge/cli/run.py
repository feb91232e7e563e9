"""Run the purge bridge.

This module provides the long-running CLI: it resolves or creates the queue,
subscribes it to the topic, then long-polls the queue and purges every
notified key on the cache server until SIGINT or SIGTERM, when the
subscription and the queue are removed again.
"""

import os
from typing import Any

import click
import dotenv
from pydantic import ValidationError

from config import APP_VERSION, Settings, get_settings
from purge_bridge.aws_client import get_sns_client, get_sqs_client
from purge_bridge.bridge import PurgeBridge
from purge_bridge.errors import BridgeError
from purge_bridge.logging_conf import setup_logging
from purge_bridge.persist_sqs import PersistSQS as QueueRepository
from purge_bridge.topic_sns import TopicSNS as TopicRepository


def load_settings(**overrides: Any) -> Settings:
    """Load settings from .env and the environment, with CLI values taking precedence."""
    if os.path.exists(".env"):
        dotenv.load_dotenv()
    try:
        return get_settings(**overrides)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


def build_bridge(settings: Settings) -> PurgeBridge:
    """Create the AWS clients once and hand them to the bridge."""
    queue_repo = QueueRepository(get_sqs_client(settings))
    topic_repo = TopicRepository(get_sns_client(settings))
    return PurgeBridge(settings, queue_repo, topic_repo)


@click.command()
@click.option("-n", "--queue-name", type=str, required=False, help="Queue name")
@click.option("--sns", "--topic-arn", "topic_arn", type=str, required=False, help="SNS topic ARN")
@click.option("-a", "--account-id", type=str, required=False, help="Your AWS account id, defaults to the topic's")
@click.option("-s", "--server", "server_url", type=str, required=False, help="Server connection string")
@click.option("-r", "--region", type=str, required=False, help="AWS region")
@click.option(
    "-t",
    "--timeout",
    "wait_time_seconds",
    type=int,
    required=False,
    help="Timeout in seconds for long polling (0-20)",
)
@click.option(
    "--queue-url",
    type=str,
    required=False,
    help="Consume an externally managed queue; it is neither subscribed nor deleted",
)
@click.option(
    "--subscribe-endpoint",
    type=click.Choice(["arn", "url"]),
    required=False,
    help="Advertise the queue to the topic by ARN or by URL",
)
@click.option("--purge-method", type=str, required=False, help="HTTP method of purge requests")
@click.option("--purge-timeout", type=float, required=False, help="Timeout in seconds of purge requests")
@click.option("--log-level", type=str, required=False, help="Log level")
@click.version_option(APP_VERSION, "-v", "--version", message="%(version)s")
def main(**kwargs: Any) -> None:
    """Purge cache keys announced on an SNS topic.

    Notifications are received through an SQS queue subscribed to the topic;
    each one carries a surrogate key in its Message field, which is sent to
    the cache server with the purge method. Messages are deleted from the
    queue before the purge is sent.
    """
    settings = load_settings(**kwargs)
    setup_logging(settings.log_level)

    try:
        bridge = build_bridge(settings)
        bridge.start()
    except BridgeError as e:
        raise click.ClickException(str(e)) from e

    consumer = bridge.serve()
    if consumer.failure is not None:
        raise click.ClickException(str(consumer.failure))


if __name__ == "__main__":
    main()
