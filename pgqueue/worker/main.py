"""
Worker process for handling queued messages.

The worker runs a consumer loop that claims batches, hands every message of
a batch to a handler concurrently, and acknowledges the ones that succeeded.
Handlers must be idempotent: delivery is at-least-once, so a message may be
handled again after a crash or a failed acknowledgment.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable

from pgqueue.config import get_settings
from pgqueue.db.connection import close_db, get_engine
from pgqueue.exceptions import AckError, DequeueError
from pgqueue.observability.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)
from pgqueue.observability.tracing import instrument_sqlalchemy, setup_tracing
from pgqueue.queue import MessageQueue
from pgqueue.types.message import ConsumerMessage, MessageReceipt
from pgqueue.worker.consumer import Batch, Consumer

logger = logging.getLogger(__name__)
handler_logger = get_logger("pgqueue.handler")

# Returns True when the message was handled and may be deleted
MessageHandler = Callable[[ConsumerMessage], Awaitable[bool]]


async def log_message(message: ConsumerMessage) -> bool:
    """Default handler: log the message and acknowledge it."""
    handler_logger.info(
        "Received message",
        message_id=message.id,
        payload_bytes=len(message.payload),
    )
    return True


class Worker:
    """
    Message worker that consumes batches and acknowledges results.

    Features:
    - Non-blocking batch claims shared safely with other workers
    - Concurrent handling of every message in a batch
    - Claim heartbeat while a batch is in flight (when reclaiming is enabled)
    - Graceful shutdown on SIGTERM/SIGINT

    Only the batch being handled is heartbeated. Up to two further claimed
    batches can be waiting (one in the channel, one held by the consumer's
    blocked put); with a short visibility timeout they may expire and be
    redelivered to another consumer before this worker reaches them.
    """

    def __init__(
        self,
        queue: MessageQueue,
        handler: MessageHandler | None = None,
        batch_size: int | None = None,
        poll_interval: float | None = None,
        heartbeat_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The queue to consume.
            handler: Coroutine deciding each message's outcome.
            batch_size: Number of messages to claim per poll.
            poll_interval: Seconds between polls when the queue is empty.
            heartbeat_interval: Seconds between claim extensions.
        """
        settings = get_settings()

        self.queue = queue
        self.handler = handler or log_message
        self.heartbeat_interval = (
            heartbeat_interval
            if heartbeat_interval is not None
            else settings.worker_heartbeat_interval_seconds
        )
        if self.heartbeat_interval <= 0:
            raise ValueError(
                f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            )

        self._channel: asyncio.Queue[Batch] = asyncio.Queue(
            maxsize=settings.consumer_channel_size
        )
        self._consumer = Consumer(
            queue,
            self._channel,
            batch_size=batch_size,
            poll_interval=poll_interval,
        )

    @property
    def consumer(self) -> Consumer:
        return self._consumer

    async def start(self) -> None:
        """Run until stopped and every delivered batch has been handled."""
        # Inherited by the consumer task and every handler call
        bind_context(queue=self.queue.name)
        logger.info("Worker starting")

        try:
            await self._drain()
        finally:
            clear_context()

    async def _drain(self) -> None:
        consumer_task = asyncio.create_task(self._consumer.run())

        try:
            while not (consumer_task.done() and self._channel.empty()):
                try:
                    batch = await asyncio.wait_for(
                        self._channel.get(), timeout=self._consumer.poll_interval
                    )
                except TimeoutError:
                    continue

                await self._process_batch(batch)
        finally:
            self._consumer.stop()

        await consumer_task

        logger.info("Worker stopped")

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping", extra={"queue": self.queue.name})
        self._consumer.stop()

    async def _process_batch(self, batch: Batch) -> None:
        """
        Handle one batch and acknowledge the successes.

        Args:
            batch: Claimed messages.
        """
        heartbeat = None
        if self.queue.config.reclaim_enabled:
            heartbeat = asyncio.create_task(
                self._heartbeat_loop([message.id for message in batch])
            )

        try:
            outcomes = await asyncio.gather(
                *(self._handle(message) for message in batch)
            )
        finally:
            if heartbeat is not None:
                heartbeat.cancel()
                try:
                    await heartbeat
                except asyncio.CancelledError:
                    pass

        receipts = [
            MessageReceipt(id=message.id, success=success)
            for message, success in zip(batch, outcomes)
        ]

        try:
            await self.queue.commit(receipts)
        except AckError:
            # Left claimed; redelivered once the visibility timeout passes
            logger.exception(
                "Failed to acknowledge batch",
                extra={"queue": self.queue.name, "message_count": len(receipts)},
            )
            return

        failed = sum(1 for receipt in receipts if not receipt.success)
        logger.info(
            f"Processed {len(receipts)} messages",
            extra={"queue": self.queue.name, "failed": failed},
        )

    async def _handle(self, message: ConsumerMessage) -> bool:
        try:
            return bool(await self.handler(message))
        except Exception as e:
            logger.exception(
                "Exception handling message",
                extra={"message_id": message.id, "error": str(e)},
            )
            return False

    async def _heartbeat_loop(self, ids: list[int]) -> None:
        """
        Periodically extend claims on the batch being handled.

        This keeps long-running batches from being reclaimed by other
        consumers while they are still in progress.
        """
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                extended = await self.queue.extend_claims(ids)
                logger.debug("Extended claims", extra={"extended": extended})
            except DequeueError as e:
                logger.warning(f"Failed to extend claims: {e}")


async def run_async(handler: MessageHandler | None = None) -> None:
    """Run the worker asynchronously."""
    setup_logging()
    settings = get_settings()

    engine = get_engine()
    if settings.otel_enabled:
        setup_tracing()
        instrument_sqlalchemy(engine.sync_engine)

    queue = MessageQueue(settings.queue_config(), engine)
    worker = Worker(queue, handler=handler)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        if settings.queue_auto_create_schema:
            await queue.create_schema()
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
