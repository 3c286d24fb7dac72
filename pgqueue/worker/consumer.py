"""
Continuous consumption loop.

Turns discrete ``consume_batch`` calls into a stream of batches pushed onto
an ``asyncio.Queue``. While batches keep coming the loop drains the queue
back to back; once a batch comes back empty (or the claim fails) it pauses
for ``poll_interval`` before trying again.
"""

import asyncio
import logging
from typing import Protocol

from pgqueue.config import get_settings
from pgqueue.constants import ConsumerState
from pgqueue.exceptions import DequeueError
from pgqueue.types.message import ConsumerMessage

logger = logging.getLogger(__name__)

Batch = list[ConsumerMessage]


class BatchSource(Protocol):
    """Anything that can claim a batch of messages."""

    @property
    def name(self) -> str: ...

    async def consume_batch(self, limit: int) -> list[ConsumerMessage]: ...


class Consumer:
    """
    Drives a queue's batch dequeuer until stopped.

    Delivery onto the channel is a blocking ``put``: if nobody reads the
    channel, the loop holds on to its current batch and claims nothing more.
    Claim errors never escape the loop; they are logged and retried after
    the pause.
    """

    def __init__(
        self,
        queue: BatchSource,
        channel: asyncio.Queue[Batch],
        stop_event: asyncio.Event | None = None,
        batch_size: int | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the consumer.

        Args:
            queue: The queue to claim from.
            channel: Where claimed batches are delivered.
            stop_event: Cancellation token. A new one is created if omitted.
            batch_size: Messages to claim per call.
            poll_interval: Seconds to pause when the queue looks empty.
        """
        settings = get_settings()

        self.queue = queue
        self.channel = channel
        self.stop_event = stop_event or asyncio.Event()
        self.batch_size = (
            batch_size if batch_size is not None else settings.consumer_batch_size
        )
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else settings.consumer_poll_interval_seconds
        )

        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

        self._state = ConsumerState.DRAINING

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to stop at its next polling boundary."""
        if not self.stop_event.is_set():
            logger.info("Consumer stopping", extra={"queue": self.queue.name})
        self.stop_event.set()

    async def run(self) -> None:
        """Run until stopped."""
        logger.info(
            "Consumer starting",
            extra={
                "queue": self.queue.name,
                "batch_size": self.batch_size,
                "poll_interval": self.poll_interval,
            },
        )

        self._state = ConsumerState.DRAINING

        while not self.stop_event.is_set():
            batch = await self._claim()

            if batch:
                await self.channel.put(batch)
                continue

            self._state = ConsumerState.IDLE
            await asyncio.sleep(self.poll_interval)
            self._state = ConsumerState.DRAINING

        self._state = ConsumerState.STOPPED
        logger.info("Consumer stopped", extra={"queue": self.queue.name})

    async def _claim(self) -> Batch:
        try:
            return await self.queue.consume_batch(self.batch_size)
        except DequeueError as e:
            logger.warning(
                f"Claim failed, retrying in {self.poll_interval}s: {e}",
                extra={"queue": self.queue.name},
            )
            return []
