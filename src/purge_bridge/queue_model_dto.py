"""Data transfer objects for queue messages, notifications and purges.

Defines the shapes that flow through the bridge: the resolved queue, the
topic subscription, messages received from the queue, the notification
envelope carried in their bodies, and the purge request derived from it.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class QueueDescriptor(BaseModel):
    """A resolved queue. The URL never changes once resolved."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(None, description="Name of the queue")
    url: str = Field(..., description="Queue URL used by every queue call")
    arn: str | None = Field(None, description="Queue ARN, resolved only when needed")
    owned: bool = Field(True, description="True when the bridge provisioned the queue")

    def with_arn(self, arn: str) -> "QueueDescriptor":
        """Return a copy of this descriptor carrying the resolved ARN."""
        return self.model_copy(update={"arn": arn})


class Subscription(BaseModel):
    """A binding of the queue to the notification topic."""

    model_config = ConfigDict(frozen=True)

    subscription_id: str = Field(..., description="Subscription ARN returned by the topic service")
    topic_arn: str = Field(..., description="ARN of the topic")
    endpoint: str = Field(..., description="Queue ARN or URL the topic delivers to")
    protocol: str = Field("sqs", description="Delivery protocol")


class NotificationEnvelope(BaseModel):
    """The JSON body of a notification: the invalidation key and an optional subject."""

    model_config = ConfigDict(extra="ignore")

    key: str = Field(..., validation_alias=AliasChoices("Message", "message"))
    subject: str | None = Field(None, validation_alias=AliasChoices("Subject", "subject"))


class ReceivedMessage(BaseModel):
    """A message as returned by one receive call."""

    message_id: str
    receipt_handle: str
    body: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    message_attributes: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_sqs(cls, message: dict[str, Any]) -> "ReceivedMessage":
        """Build from one entry of a ReceiveMessage response."""
        return cls(
            message_id=message["MessageId"],
            receipt_handle=message["ReceiptHandle"],
            body=message.get("Body", ""),
            attributes=message.get("Attributes", {}),
            message_attributes=message.get("MessageAttributes", {}),
        )


class PurgeRequest(BaseModel):
    """A purge of one surrogate key on the cache server."""

    server_url: str
    key: str
    method: str = "BAN"

    @property
    def headers(self) -> dict[str, bytes | str]:
        """Request headers; the key goes on the wire as UTF-8 bytes."""
        return {"Surrogate-Key": self.key.encode("utf-8"), "Connection": "close"}

    @classmethod
    def from_envelope(cls, server_url: str, envelope: NotificationEnvelope, method: str = "BAN") -> "PurgeRequest":
        return cls(server_url=server_url, key=envelope.key, method=method)
