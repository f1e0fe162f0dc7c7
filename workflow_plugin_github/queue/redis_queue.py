"""
Redis-based publisher implementation.

Each topic maps to a Redis Stream. A published message becomes one stream
entry whose ``payload`` field carries the serialized event and whose other
fields carry the routing metadata, so consumers can filter with XREAD /
consumer groups without decoding the payload.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .base import MessagePublisher, PublishError

PAYLOAD_FIELD = "payload"


class RedisPublisher(MessagePublisher):
    """Redis Streams implementation of the message publisher."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        stream_prefix: str = "",
        max_stream_length: Optional[int] = 100_000,
        max_connections: int = 10,
    ):
        """
        Initialize Redis publisher.

        Args:
            redis_url: Redis connection URL
            stream_prefix: Prefix prepended to topic names to form stream keys
            max_stream_length: Approximate cap on entries kept per stream
                (``None`` disables trimming)
            max_connections: Maximum Redis connection pool size
        """
        self.redis_url = redis_url
        self.stream_prefix = stream_prefix
        self.max_stream_length = max_stream_length
        self.max_connections = max_connections
        self._redis: Optional[Redis] = None
        self._connected = False

    def stream_key(self, topic: str) -> str:
        """Redis key of the stream backing ``topic``."""
        return f"{self.stream_prefix}{topic}"

    async def _ensure_connected(self) -> Redis:
        """Ensure Redis connection is established."""
        if self._redis is None or not self._connected:
            try:
                self._redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=self.max_connections,
                )
                await self._redis.ping()
                self._connected = True
            except RedisError as e:
                self._connected = False
                raise ConnectionError(f"Failed to connect to Redis: {e}") from e

        return self._redis

    async def publish(
        self,
        topic: str,
        payload: bytes,
        metadata: dict[str, str],
    ) -> str:
        """
        Append a message to the topic's stream.

        Returns:
            The stream entry id assigned by Redis
        """
        fields: dict[str, bytes | str] = {**metadata, PAYLOAD_FIELD: payload}
        try:
            redis_client = await self._ensure_connected()
            entry_id = await redis_client.xadd(
                self.stream_key(topic),
                fields,
                maxlen=self.max_stream_length,
                approximate=True,
            )
        except (RedisError, ConnectionError) as e:
            self._connected = False
            raise PublishError(f"redis publish to {topic!r} failed: {e}") from e

        return str(entry_id)

    async def health_check(self) -> bool:
        """Check if Redis is healthy."""
        try:
            redis_client = await self._ensure_connected()
            await redis_client.ping()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._connected = False
