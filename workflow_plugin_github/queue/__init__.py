"""Message broker publishers for normalized git events."""

from .base import BrokerMessage, MessagePublisher, PublishError
from .memory_queue import MemoryPublisher
from .redis_queue import RedisPublisher
from .factory import create_publisher

__all__ = [
    "BrokerMessage",
    "MessagePublisher",
    "PublishError",
    "MemoryPublisher",
    "RedisPublisher",
    "create_publisher",
]
