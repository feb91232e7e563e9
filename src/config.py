"""Application settings loaded from the environment.

Uses pydantic-settings for validation. Every field can be set with a
PURGE_BRIDGE_ prefixed environment variable (e.g. PURGE_BRIDGE_QUEUE_NAME);
the CLIs load a local .env file first when one exists.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.2.0"


class Settings(BaseSettings):
    """Runtime settings for the purge bridge (queue, topic, cache server)."""

    # Queue / topic
    queue_name: str | None = Field(None, description="Name of the queue to resolve or create")
    queue_url: str | None = Field(None, description="URL of an externally managed queue")
    topic_arn: str | None = Field(None, description="ARN of the notification topic")
    account_id: str | None = Field(None, description="AWS account id owning the queue")
    region: str = Field("us-east-1", description="AWS region")
    subscribe_endpoint: Literal["arn", "url"] = Field(
        "arn", description="Advertise the queue to the topic by ARN or by URL"
    )
    retention_seconds: int = Field(3600, ge=60, description="Message retention of created queues")
    provision_attempts: int = Field(5, ge=1, description="Resolve attempts after creating a queue")
    provision_retry_delay: float = Field(1.0, ge=0, description="Seconds between resolve attempts")

    # Consumption
    wait_time_seconds: int = Field(20, ge=0, le=20, description="Long-poll wait in seconds")
    retry_delay: float = Field(1.0, ge=0, description="Pause after a retryable queue error")

    # Cache server
    server_url: str = Field("http://localhost:6081", description="Cache server receiving purges")
    purge_method: str = Field("BAN", description="HTTP method used for purge requests")
    purge_timeout: float = Field(10.0, gt=0, description="Timeout in seconds for a purge request")

    # Credentials, None falls back to the boto3 default chain
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    log_level: str = Field("INFO", description="Root log level")

    model_config = SettingsConfigDict(env_prefix="PURGE_BRIDGE_", extra="ignore", frozen=True)


def get_settings(**overrides) -> Settings:
    """Return the loaded settings, with any non-None overrides applied (e.g. CLI flags)."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
