"""Publish a purge notification to the topic.

CLI that sends a surrogate key as the Message of an SNS notification, the
way the upstream publisher does; useful to check a running bridge end to end.
"""

from typing import Any

import click

from purge_bridge.aws_client import get_sns_client
from purge_bridge.cli.run import load_settings
from purge_bridge.errors import TopicServiceError
from purge_bridge.topic_sns import TopicSNS as TopicRepository


@click.command()
@click.option("--topic-arn", type=str, required=False, help="The ARN of the topic to publish to")
@click.option("--key", type=str, required=True, help="The surrogate key to purge")
@click.option("--subject", type=str, required=False, help="Optional notification subject")
@click.option("--region", type=str, required=False, help="AWS region")
def main(key: str, subject: str | None, **kwargs: Any) -> None:
    """Publish a notification carrying KEY; any bridge subscribed to the topic purges it."""
    if not key.strip():
        raise click.ClickException("The key must not be empty")

    settings = load_settings(**kwargs)
    if not settings.topic_arn:
        raise click.ClickException("No topic ARN provided and PURGE_BRIDGE_TOPIC_ARN is not set")

    click.echo(f"topic-arn: {settings.topic_arn}")
    click.echo(f"key: {key}")

    topic_repo = TopicRepository(get_sns_client(settings))
    try:
        message_id = topic_repo.publish(settings.topic_arn, key, subject=subject)
    except TopicServiceError as e:
        raise click.ClickException(f"Error: {e}") from e
    click.echo(f"Notification published with ID: {message_id}")


if __name__ == "__main__":
    main()
