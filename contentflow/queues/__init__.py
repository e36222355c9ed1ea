"""
Redis Streams queue abstractions with automatic pending message reclaim.

Classes:
    BaseRedisQueue: Abstract base class for Redis Streams queues
    StreamConfig: Stream, group and DLQ names
    QueueConfig: Reclaim and retry behavior
    ExponentialBackoff: Delay calculator for worker reconnect loops
"""

from contentflow.queues.backoff import ExponentialBackoff
from contentflow.queues.base import BaseRedisQueue, StreamConfig
from contentflow.queues.config import QueueConfig

__all__ = [
    "BaseRedisQueue",
    "ExponentialBackoff",
    "QueueConfig",
    "StreamConfig",
]
