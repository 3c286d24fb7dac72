"""
Queue repository for database operations.
Implements the statement-level data access for one queue table.
"""

import logging
from collections.abc import Sequence
from datetime import timedelta

from sqlalchemy import (
    BigInteger,
    Delete,
    Interval,
    Table,
    Update,
    any_,
    bindparam,
    case,
    cast,
    delete,
    func,
    insert,
    literal,
    or_,
    select,
    update,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.ext.asyncio import AsyncSession

from pgqueue.types.message import ConsumerMessage, QueueDepth

logger = logging.getLogger(__name__)


def build_claim_statement(
    table: Table,
    limit: int,
    visibility_timeout: timedelta,
) -> Update:
    """
    Build the atomic claim statement.

    Selects up to ``limit`` claimable rows, skipping rows locked by a
    concurrent claim, stamps them with the claim time and returns them.
    A row is claimable when it has never been claimed, or, when the
    visibility timeout is positive, when its claim is older than the timeout.

    Args:
        table: The queue table.
        limit: Maximum number of rows to claim.
        visibility_timeout: Claim validity; zero disables reclaiming.

    Returns:
        Update: An UPDATE ... RETURNING statement.
    """
    claimable = table.c.claimed_at.is_(None)
    if visibility_timeout > timedelta(0):
        timeout = cast(literal(visibility_timeout), Interval)
        expired = table.c.claimed_at < func.now() - timeout
        claimable = or_(claimable, expired)

    candidates = (
        select(table.c.id)
        .where(claimable)
        # Rows published together share enqueued_at; id keeps them in order
        .order_by(
            table.c.claimed_at.asc().nulls_first(),
            table.c.enqueued_at.asc(),
            table.c.id.asc(),
        )
        .limit(limit)
        .with_for_update(skip_locked=True)
        # Same table as the UPDATE; must not correlate to it
        .correlate(None)
    )

    return (
        update(table)
        .where(table.c.id.in_(candidates.scalar_subquery()))
        .values(claimed_at=func.now())
        .returning(table.c.id, table.c.payload, table.c.enqueued_at)
    )


def _id_matches(table: Table, ids: Sequence[int]):
    # A single BIGINT[] parameter, whatever the number of ids
    return table.c.id == any_(bindparam("ids", list(ids), type_=ARRAY(BigInteger)))


def build_delete_statement(table: Table, ids: Sequence[int]) -> Delete:
    """Build ``DELETE FROM P WHERE id = ANY(:ids)``."""
    return delete(table).where(_id_matches(table, ids))


def build_extend_statement(table: Table, ids: Sequence[int]) -> Update:
    """Build the claim refresh for currently claimed rows among ``ids``."""
    return (
        update(table)
        .where(_id_matches(table, ids), table.c.claimed_at.is_not(None))
        .values(claimed_at=func.now())
    )


class QueueRepository:
    """
    Repository for queue table operations.

    Every method issues a single statement against the session; the caller
    owns the transaction and decides when to commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        table: Table,
        visibility_timeout: timedelta = timedelta(0),
    ):
        """
        Initialize the repository.

        Args:
            session: The async database session.
            table: The queue table to operate on.
            visibility_timeout: Claim validity; zero disables reclaiming.
        """
        self._session = session
        self._table = table
        self._visibility_timeout = visibility_timeout

    async def insert_messages(self, payloads: Sequence[bytes]) -> None:
        """
        Bulk insert payloads as new rows.

        The server assigns id and enqueued_at.

        Args:
            payloads: The message payloads.
        """
        await self._session.execute(
            insert(self._table),
            [{"payload": payload} for payload in payloads],
        )

    async def claim_batch(self, limit: int) -> list[ConsumerMessage]:
        """
        Claim up to ``limit`` rows using FOR UPDATE SKIP LOCKED.

        Args:
            limit: Maximum number of rows to claim.

        Returns:
            Claimed messages, oldest-enqueued first.
        """
        stmt = build_claim_statement(self._table, limit, self._visibility_timeout)
        result = await self._session.execute(stmt)

        # RETURNING order is unspecified
        rows = sorted(result.all(), key=lambda row: (row.enqueued_at, row.id))

        return [ConsumerMessage(id=row.id, payload=row.payload) for row in rows]

    async def delete_messages(self, ids: Sequence[int]) -> int:
        """
        Delete rows by id.

        Args:
            ids: The ids to delete. Unknown ids are ignored.

        Returns:
            Number of rows deleted.
        """
        stmt = build_delete_statement(self._table, ids)
        result = await self._session.execute(stmt)
        return result.rowcount

    async def extend_claims(self, ids: Sequence[int]) -> int:
        """
        Refresh the claim time of currently claimed rows.

        Args:
            ids: The ids to extend.

        Returns:
            Number of rows extended.
        """
        stmt = build_extend_statement(self._table, ids)
        result = await self._session.execute(stmt)
        return result.rowcount

    async def get_depth(self) -> QueueDepth:
        """
        Count unclaimed and claimed rows.

        Returns:
            QueueDepth snapshot.
        """
        stmt = select(
            func.count(case((self._table.c.claimed_at.is_(None), 1))),
            func.count(self._table.c.claimed_at),
        ).select_from(self._table)
        result = await self._session.execute(stmt)
        unclaimed, claimed = result.one()
        return QueueDepth(unclaimed=unclaimed or 0, claimed=claimed or 0)
