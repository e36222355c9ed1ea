"""
Reclaim and retry settings for Redis Streams queues.
"""

from dataclasses import dataclass


@dataclass
class QueueConfig:
    """
    Configuration for queue message reclaim behavior.

    Attributes:
        idle_timeout_ms: Time after which an unacknowledged message may be
            reclaimed by another consumer. A sync of a large channel can
            take minutes, so this must exceed the slowest expected run.
        max_delivery_attempts: Deliveries before a message goes to the DLQ.
        reclaim_batch_size: Pending messages claimed per XAUTOCLAIM call.
        dlq_max_length: Approximate cap on dead letter stream length.
    """

    idle_timeout_ms: int = 300_000
    max_delivery_attempts: int = 3
    reclaim_batch_size: int = 10
    dlq_max_length: int = 10_000
