"""Pub/sub message envelope."""

from typing import Any

from pydantic import Field

from .base import FarmBaseModel


class ChannelMessage(FarmBaseModel):
    """Inbound pub/sub notification tagged with its routing metadata.

    Built once per received message and handed to the subscriber's
    queue. Never persisted.
    """

    tag: str = Field(description="Caller-assigned subscription tag")
    db: int = Field(description="Redis db index of the receiving store")
    channel: str = Field(description="Channel the message was published on")
    pattern: str | None = Field(
        default=None, description="Matching pattern for PSUBSCRIBE deliveries"
    )
    data: str = Field(description="Raw message payload")

    @classmethod
    def from_redis(cls, tag: str, db: int, message: dict[str, Any]) -> "ChannelMessage":
        """Wrap a redis-py pub/sub message dict."""
        return cls(
            tag=tag,
            db=db,
            channel=message["channel"],
            pattern=message.get("pattern"),
            data=message["data"],
        )
