"""
Message value types.

These are plain immutable values connected only by their ``id`` and
``payload`` fields; none of them inherits from another.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Message:
    """A payload waiting to be published."""

    payload: bytes


@dataclass(frozen=True, slots=True)
class ConsumerMessage:
    """
    A claimed queue row as seen by a consumer.
    Acknowledge it by returning a MessageReceipt with the same id.
    """

    id: int
    payload: bytes


@dataclass(frozen=True, slots=True)
class MessageReceipt:
    """Outcome of processing one delivered message."""

    id: int
    success: bool

    @classmethod
    def ok(cls, message: ConsumerMessage) -> "MessageReceipt":
        return cls(id=message.id, success=True)

    @classmethod
    def failed(cls, message: ConsumerMessage) -> "MessageReceipt":
        return cls(id=message.id, success=False)


@dataclass(frozen=True, slots=True)
class QueueDepth:
    """Snapshot of how many rows are waiting versus in flight."""

    unclaimed: int
    claimed: int

    @property
    def total(self) -> int:
        return self.unclaimed + self.claimed
