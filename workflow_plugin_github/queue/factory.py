"""
Publisher factory for creating the appropriate broker implementation.

This module provides a factory function that automatically selects
the best available publisher backend (Redis preferred, memory fallback).
"""

import os
from typing import Optional

from .base import MessagePublisher
from .memory_queue import MemoryPublisher
from .redis_queue import RedisPublisher

from workflow_plugin_github.utils.logging import get_logger

logger = get_logger(__name__)


async def create_publisher(
    redis_url: Optional[str] = None,
    stream_prefix: str = "",
    fallback_to_memory: bool = True,
) -> MessagePublisher:
    """
    Create a publisher, preferring Redis but falling back to memory if needed.

    Args:
        redis_url: Redis connection URL (defaults to REDIS_URL env var)
        stream_prefix: Prefix for Redis stream keys
        fallback_to_memory: Whether to fall back to memory if Redis fails

    Returns:
        Publisher instance (Redis or Memory)

    Raises:
        ConnectionError: If Redis fails and fallback_to_memory is False
    """
    if redis_url is None:
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    redis_publisher = RedisPublisher(redis_url=redis_url, stream_prefix=stream_prefix)

    if await redis_publisher.health_check():
        logger.info("publisher_connected", publisher_type="redis")
        return redis_publisher

    await redis_publisher.close()
    if not fallback_to_memory:
        raise ConnectionError(f"Failed to connect to Redis at {redis_url}")

    logger.warning("publisher_fallback", reason="redis_unavailable", publisher_type="memory")
    return MemoryPublisher()
