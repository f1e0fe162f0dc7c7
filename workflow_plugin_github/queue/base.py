"""
Abstract base class for message broker publishers.

This module defines the interface every publisher implementation must follow,
allowing the plugin to swap between Redis, an in-memory sink, or the host
engine's own broker without touching the webhook receiver.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional


class PublishError(RuntimeError):
    """Raised when a message could not be handed to the broker."""


class BrokerMessage:
    """Represents a message handed to the broker."""

    def __init__(
        self,
        topic: str,
        payload: bytes,
        metadata: Optional[dict[str, str]] = None,
        message_id: str = "",
        published_at: Optional[datetime] = None,
    ):
        """
        Initialize a broker message.

        Args:
            topic: Topic (stream) the message is published to
            payload: Serialized message body
            metadata: String tags used by the broker for routing/filtering
            message_id: Identifier assigned by the broker
            published_at: When the message was published
        """
        self.topic = topic
        self.payload = payload
        self.metadata = dict(metadata or {})
        self.message_id = message_id
        self.published_at = published_at or datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Serialize message to dictionary."""
        return {
            "topic": self.topic,
            "payload": self.payload.decode("utf-8"),
            "metadata": self.metadata,
            "message_id": self.message_id,
            "published_at": self.published_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BrokerMessage":
        """Deserialize message from dictionary."""
        return cls(
            topic=data["topic"],
            payload=data["payload"].encode("utf-8"),
            metadata=data.get("metadata", {}),
            message_id=data.get("message_id", ""),
            published_at=datetime.fromisoformat(data["published_at"]),
        )

    def __repr__(self) -> str:
        return (
            f"BrokerMessage(topic={self.topic!r}, message_id={self.message_id!r}, "
            f"size={len(self.payload)})"
        )


class MessagePublisher(ABC):
    """Abstract base class for publisher implementations."""

    @abstractmethod
    async def publish(
        self,
        topic: str,
        payload: bytes,
        metadata: dict[str, str],
    ) -> str:
        """
        Publish a message to a topic.

        Args:
            topic: Destination topic
            payload: Serialized message body
            metadata: String tags for broker-side routing

        Returns:
            Identifier assigned to the message

        Raises:
            PublishError: If the broker rejected or could not receive the message
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the broker backend is healthy.

        Returns:
            True if healthy, False otherwise
        """

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""
