"""AWS client factory.

Clients are created once at startup from the settings and handed to the
backends; nothing here is cached at module level.
"""

import logging

import boto3

from config import Settings

logger = logging.getLogger(__name__)


def _client(service: str, settings: Settings):
    try:
        client = boto3.client(
            service,
            region_name=settings.region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,  # Optional for temporary credentials
        )
    except Exception as e:
        logger.error(f"Failed to initialize {service.upper()} client: {e}")
        raise
    logger.debug(f"{service.upper()} client initialized for region {settings.region}")
    return client


def get_sqs_client(settings: Settings):
    """Get an SQS client for the configured region."""
    return _client("sqs", settings)


def get_sns_client(settings: Settings):
    """Get an SNS client for the configured region."""
    return _client("sns", settings)
