"""
Type definitions for the message queue.
Contains the value types exchanged with the queue, grouped by module.
"""

from pgqueue.types.message import (
    ConsumerMessage,
    Message,
    MessageReceipt,
    QueueDepth,
)
from pgqueue.types.queue import QueueConfig

__all__ = [
    # Message types
    "Message",
    "ConsumerMessage",
    "MessageReceipt",
    "QueueDepth",
    # Configuration types
    "QueueConfig",
]
