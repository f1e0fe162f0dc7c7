"""
In-memory publisher implementation (fallback).

This module provides a simple in-memory sink for development and testing
when Redis is not available. NOT suitable for production use: messages
live only as long as the process.
"""

import asyncio
import uuid
from collections import deque
from typing import Optional

from .base import BrokerMessage, MessagePublisher


class MemoryPublisher(MessagePublisher):
    """In-memory implementation of the message publisher (development only)."""

    def __init__(self, max_messages: Optional[int] = 10_000):
        """
        Initialize in-memory publisher.

        Args:
            max_messages: Number of messages retained; the oldest are dropped
                first. ``None`` keeps everything.
        """
        self._messages: deque[BrokerMessage] = deque(maxlen=max_messages)
        self._lock = asyncio.Lock()

    async def publish(
        self,
        topic: str,
        payload: bytes,
        metadata: dict[str, str],
    ) -> str:
        """Record a message and return its generated id."""
        message = BrokerMessage(
            topic=topic,
            payload=payload,
            metadata=metadata,
            message_id=f"mem-{uuid.uuid4().hex[:12]}",
        )
        async with self._lock:
            self._messages.append(message)
        return message.message_id

    async def messages(self, topic: Optional[str] = None) -> list[BrokerMessage]:
        """Return recorded messages, optionally restricted to one topic."""
        async with self._lock:
            return [m for m in self._messages if topic is None or m.topic == topic]

    async def get_message_count(self) -> int:
        """Get number of retained messages."""
        async with self._lock:
            return len(self._messages)

    async def health_check(self) -> bool:
        """Check if publisher is healthy (always true for memory publisher)."""
        return True

    async def close(self) -> None:
        """Close publisher (no-op for memory publisher)."""
