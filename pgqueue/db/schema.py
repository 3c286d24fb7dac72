"""
Queue table definition and schema management.

Each queue lives in its own table named after the queue's prefix, backed by
a dedicated id sequence and an index that keeps unclaimed rows first and
orders each class oldest-first.
"""

import logging

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    LargeBinary,
    MetaData,
    Sequence,
    Table,
    func,
)
from sqlalchemy.ext.asyncio import AsyncEngine

from pgqueue.exceptions import STORE_ERRORS, SchemaError
from pgqueue.types.queue import QueueConfig

logger = logging.getLogger(__name__)


def build_table(config: QueueConfig, metadata: MetaData | None = None) -> Table:
    """
    Build the SQLAlchemy table for a queue.

    Args:
        config: The queue configuration providing the names.
        metadata: Optional metadata to attach to. A fresh one is used otherwise.

    Returns:
        Table: The queue table, with its sequence and claim index attached.
    """
    metadata = metadata if metadata is not None else MetaData()
    id_seq = Sequence(config.sequence_name, metadata=metadata)

    table = Table(
        config.table_name,
        metadata,
        Column(
            "id",
            BigInteger,
            id_seq,
            server_default=id_seq.next_value(),
            primary_key=True,
        ),
        Column(
            "enqueued_at",
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
        ),
        # NULL until claimed; holds the claim time afterwards
        Column("claimed_at", DateTime(timezone=True), nullable=True),
        Column("payload", LargeBinary, nullable=False),
    )

    # Backbone of the dequeue ordering
    Index(
        config.index_name,
        table.c.claimed_at.asc().nulls_first(),
        table.c.enqueued_at.asc(),
    )

    return table


class SchemaManager:
    """
    Creates and destroys the objects backing one queue.

    Both operations are idempotent and safe to call repeatedly.
    """

    def __init__(self, engine: AsyncEngine, table: Table):
        self._engine = engine
        self._table = table

    async def create_schema(self) -> None:
        """
        Create the sequence, table and claim index if they do not exist.

        Raises:
            SchemaError: If the store rejects the DDL.
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(self._table.metadata.create_all, checkfirst=True)
        except STORE_ERRORS as e:
            raise SchemaError(
                f"Failed to create schema for queue {self._table.name!r}: {e}"
            ) from e

        logger.info("Queue schema ready", extra={"queue": self._table.name})

    async def drop_schema(self) -> None:
        """
        Drop the table and sequence if they exist.

        Raises:
            SchemaError: If the store rejects the DDL.
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(self._table.metadata.drop_all, checkfirst=True)
        except STORE_ERRORS as e:
            raise SchemaError(
                f"Failed to drop schema for queue {self._table.name!r}: {e}"
            ) from e

        logger.info("Queue schema dropped", extra={"queue": self._table.name})
