"""
Durable message queue on top of PostgreSQL.

Every operation runs as its own transaction. Claims use
FOR UPDATE SKIP LOCKED, so any number of consumers, in this process or
others, can share one queue table without blocking each other or claiming
the same row twice. Delivery is at-least-once: a claimed message that is
never acknowledged becomes claimable again once the visibility timeout
passes (or never, when the timeout is zero).
"""

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from pgqueue.constants import (
    SPAN_COMMIT,
    SPAN_CONSUME_BATCH,
    SPAN_EXTEND_CLAIMS,
    SPAN_PUBLISH,
)
from pgqueue.db.connection import create_session_factory, get_engine
from pgqueue.db.repository import QueueRepository
from pgqueue.db.schema import SchemaManager, build_table
from pgqueue.exceptions import STORE_ERRORS, AckError, DequeueError, PublishError
from pgqueue.observability.tracing import get_tracer
from pgqueue.types.message import ConsumerMessage, Message, MessageReceipt, QueueDepth
from pgqueue.types.queue import QueueConfig

logger = logging.getLogger(__name__)


class MessageQueue:
    """
    A named queue backed by one table.

    Example:
        queue = MessageQueue(QueueConfig(name_prefix="emails"), engine)
        await queue.create_schema()
        await queue.publish([Message(payload=b"hello")])

        batch = await queue.consume_batch(10)
        await queue.commit([MessageReceipt.ok(m) for m in batch])
    """

    def __init__(
        self,
        config: QueueConfig | None = None,
        engine: AsyncEngine | None = None,
    ):
        """
        Initialize the queue.

        Args:
            config: Queue configuration. Defaults to QueueConfig().
            engine: Async engine to use. Defaults to the global engine.
        """
        self.config = config or QueueConfig()
        self._engine = engine or get_engine()
        self._session_factory = create_session_factory(self._engine)
        self._table = build_table(self.config)
        self._schema = SchemaManager(self._engine, self._table)

    @property
    def name(self) -> str:
        return self.config.name_prefix

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        """
        Open one unit of work.
        Commits on success, rolls back on any exception.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def _repository(self, session: AsyncSession) -> QueueRepository:
        return QueueRepository(session, self._table, self.config.visibility_timeout)

    async def create_schema(self) -> None:
        """
        Create the queue's sequence, table and index if missing.

        Raises:
            SchemaError: If the store rejects the DDL.
        """
        await self._schema.create_schema()

    async def drop_schema(self) -> None:
        """
        Drop the queue's table and sequence if present.

        Raises:
            SchemaError: If the store rejects the DDL.
        """
        await self._schema.drop_schema()

    async def publish(self, messages: Sequence[Message]) -> None:
        """
        Append a batch of messages atomically.

        Either every message becomes visible to consumers or none does.

        Args:
            messages: The messages to publish.

        Raises:
            PublishError: If the insert fails. Nothing from the batch is written.
        """
        if not messages:
            logger.debug("Publish called with no messages", extra={"queue": self.name})
            return

        with get_tracer().start_as_current_span(SPAN_PUBLISH) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("message_count", len(messages))

            try:
                async with self._session() as session:
                    await self._repository(session).insert_messages(
                        [message.payload for message in messages]
                    )
            except STORE_ERRORS as e:
                logger.warning(
                    "Publish failed",
                    extra={"queue": self.name, "message_count": len(messages), "error": str(e)},
                )
                raise PublishError(f"Failed to publish {len(messages)} messages: {e}") from e

        logger.debug(
            "Published messages",
            extra={"queue": self.name, "message_count": len(messages)},
        )

    async def consume_batch(self, limit: int) -> list[ConsumerMessage]:
        """
        Claim up to ``limit`` messages.

        Unclaimed messages are preferred over expired claims, oldest first.
        Rows locked by a concurrent claim are skipped, so the result may be
        shorter than ``limit`` or empty. The claim is committed before this
        method returns.

        Args:
            limit: Maximum number of messages to claim. Must be positive.

        Returns:
            The claimed messages, oldest-enqueued first.

        Raises:
            ValueError: If limit is not positive.
            DequeueError: If the claim fails. Nothing is claimed.
        """
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        with get_tracer().start_as_current_span(SPAN_CONSUME_BATCH) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("limit", limit)

            try:
                async with self._session() as session:
                    messages = await self._repository(session).claim_batch(limit)
            except STORE_ERRORS as e:
                raise DequeueError(f"Failed to claim messages: {e}") from e

            span.set_attribute("message_count", len(messages))

        if messages:
            logger.debug(
                f"Claimed {len(messages)} messages",
                extra={"queue": self.name, "message_count": len(messages)},
            )

        return messages

    async def commit(self, receipts: Sequence[MessageReceipt]) -> None:
        """
        Acknowledge processed messages.

        Successful receipts are deleted in a single statement. Failed
        receipts are left claimed, to be reclaimed after the visibility
        timeout (or never, when it is zero). Ids that no longer exist are
        ignored, so acknowledging twice is harmless.

        Args:
            receipts: Outcomes for previously delivered messages.

        Raises:
            AckError: If the delete fails. No message is deleted.
        """
        ids = [receipt.id for receipt in receipts if receipt.success]
        if not ids:
            return

        with get_tracer().start_as_current_span(SPAN_COMMIT) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("message_count", len(ids))

            try:
                async with self._session() as session:
                    deleted = await self._repository(session).delete_messages(ids)
            except STORE_ERRORS as e:
                logger.warning(
                    "Acknowledgment failed",
                    extra={"queue": self.name, "message_count": len(ids), "error": str(e)},
                )
                raise AckError(f"Failed to acknowledge {len(ids)} messages: {e}") from e

        logger.debug(
            "Acknowledged messages",
            extra={
                "queue": self.name,
                "acknowledged": len(ids),
                "deleted": deleted,
                "rejected": len(receipts) - len(ids),
            },
        )

    async def extend_claims(self, ids: Sequence[int]) -> int:
        """
        Push back the visibility timeout of messages still being processed.

        Args:
            ids: Ids of currently claimed messages.

        Returns:
            Number of messages whose claim was extended.

        Raises:
            DequeueError: If the update fails.
        """
        if not ids:
            return 0

        with get_tracer().start_as_current_span(SPAN_EXTEND_CLAIMS) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("message_count", len(ids))

            try:
                async with self._session() as session:
                    return await self._repository(session).extend_claims(ids)
            except STORE_ERRORS as e:
                raise DequeueError(f"Failed to extend claims: {e}") from e

    async def get_depth(self) -> QueueDepth:
        """
        Count waiting and in-flight messages.

        Raises:
            DequeueError: If the query fails.
        """
        try:
            async with self._session() as session:
                return await self._repository(session).get_depth()
        except STORE_ERRORS as e:
            raise DequeueError(f"Failed to read queue depth: {e}") from e
