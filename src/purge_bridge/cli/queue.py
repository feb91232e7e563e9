"""Manage the bridge's queue.

CLI that creates (with the topic-scoped policy), shows the status of,
destroys or purges a queue by name.
"""

from typing import Any

import click
from icecream import ic

from purge_bridge.aws_client import get_sqs_client
from purge_bridge.cli.run import load_settings
from purge_bridge.errors import BridgeError, QueueNotFoundError
from purge_bridge.persist_sqs import PersistSQS as QueueRepository
from purge_bridge.provisioner import QueueProvisioner


def queue_exists(queue_repo: QueueRepository, queue_name: str) -> bool:
    """Return True if the named queue resolves."""
    try:
        queue_repo.get_queue_url(queue_name)
    except QueueNotFoundError:
        return False
    return True


@click.command()
@click.option("--queue-name", type=str, required=True, help="The name of the queue")
@click.option("--action", type=str, required=True, help="The action to perform on the queue")
@click.option("--topic-arn", type=str, required=False, help="Topic allowed to send to a created queue")
@click.option("--account-id", type=str, required=False, help="AWS account id, defaults to the topic's")
@click.option("--region", type=str, required=False, help="AWS region")
def main(queue_name: str, action: str, **kwargs: Any) -> bool | dict | None:
    """Create, show the status of, destroy or purge the named queue."""
    click.echo(f"Queue {queue_name} {action}")

    settings = load_settings(queue_name=queue_name, **kwargs)
    queue_repo = QueueRepository(get_sqs_client(settings))
    try:
        match action:
            case "create":
                if not settings.topic_arn:
                    raise click.ClickException("--topic-arn is required to create a queue")
                provisioner = QueueProvisioner(
                    queue_repo,
                    region=settings.region,
                    account_id=settings.account_id,
                    retention_seconds=settings.retention_seconds,
                    max_attempts=settings.provision_attempts,
                    retry_delay=settings.provision_retry_delay,
                )
                descriptor = provisioner.resolve_or_create_queue(queue_name, settings.topic_arn)
                click.echo(f"Queue {queue_name} created: {descriptor.url}")
                return True
            case "status":
                metrics = queue_repo.metrics(queue_repo.get_queue_url(queue_name))
                ic(metrics)
                return metrics
            case "destroy":
                queue_repo.delete_queue(queue_repo.get_queue_url(queue_name))
                click.echo(f"Queue {queue_name} destroyed")
                return True
            case "purge":
                queue_repo.purge_queue(queue_repo.get_queue_url(queue_name))
                click.echo(f"Queue {queue_name} purged")
                return True
            case _:
                raise click.ClickException(
                    f"Invalid action: {action}. Valid actions are: create, status, destroy, purge"
                )
    except BridgeError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    main()
