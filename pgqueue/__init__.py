"""
pgqueue

A durable message queue on PostgreSQL. Producers publish opaque byte
payloads; consumers claim batches with FOR UPDATE SKIP LOCKED and
acknowledge them explicitly, giving at-least-once delivery without a
separate broker.
"""

__version__ = "1.0.0"

from pgqueue.exceptions import (  # noqa: E402
    AckError,
    DequeueError,
    PublishError,
    QueueError,
    SchemaError,
)
from pgqueue.queue import MessageQueue  # noqa: E402
from pgqueue.types import (  # noqa: E402
    ConsumerMessage,
    Message,
    MessageReceipt,
    QueueConfig,
    QueueDepth,
)
from pgqueue.worker.consumer import Consumer  # noqa: E402

__all__ = [
    "MessageQueue",
    "Consumer",
    "QueueConfig",
    "Message",
    "ConsumerMessage",
    "MessageReceipt",
    "QueueDepth",
    "QueueError",
    "SchemaError",
    "PublishError",
    "DequeueError",
    "AckError",
]
