"""Item lifecycle store - durable pipeline state for every feed item.

Every operation runs in its own transaction. A failure rolls the whole
transaction back and surfaces as StoreError; the only silent outcome is an
update that matches no row.

There is no claim on a selected candidate: between select_next_* and the
matching update another writer could pick the same row. Run at most one
driver per stage at a time against the same database.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Select

from feedrelay.exceptions import DuplicateIdentityError, StoreError
from feedrelay.models import Item, ItemStatus, Stage
from feedrelay.models.item import utcnow


class ItemStore:
    """Persistence, state transitions and candidate selection for items."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_deferred_retry_count: int = 3,
        logger: logging.Logger | None = None,
    ):
        self.session_factory = session_factory
        self.max_deferred_retry_count = max_deferred_retry_count
        self.logger = logger or logging.getLogger(__name__)

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session with a transaction that commits on success and rolls back on error."""
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as e:
                self.logger.error("transaction rollback: failed to %s: %s", action, e)
                raise StoreError(f"failed to {action}: {e}") from e

    async def insert(self, item: Item) -> Item:
        """
        Insert a new item.

        Raises DuplicateIdentityError if the identity is already stored; the
        existing row is left untouched.
        """
        if item.published_at is None:
            raise ValueError(f"item {item.identity} has no published_at")

        now = utcnow()
        item.created_at = now
        item.last_checked_at = now

        async with self.session_factory() as session:
            try:
                async with session.begin():
                    session.add(item)
            except IntegrityError as e:
                violation = e
            except SQLAlchemyError as e:
                self.logger.error("transaction rollback: failed to insert %s: %s", item.identity, e)
                raise StoreError(f"failed to insert item {item.identity}: {e}") from e
            else:
                return item

        # Only a row with the same identity makes this a duplicate
        if await self.exists(item.identity):
            self.logger.debug("duplicate identity %s", item.identity)
            raise DuplicateIdentityError(item.identity) from violation
        self.logger.error("transaction rollback: failed to insert %s: %s", item.identity, violation)
        raise StoreError(f"failed to insert item {item.identity}: {violation}") from violation

    async def update(self, item: Item) -> bool:
        """
        Persist status, reason, retry_count and deferred_stage, and refresh last_checked_at.

        Returns False when no row has this identity.
        """
        now = utcnow()
        stmt = (
            update(Item)
            .where(Item.identity == item.identity)
            .values(
                status=item.status,
                reason=item.reason,
                retry_count=item.retry_count,
                deferred_stage=item.deferred_stage,
                last_checked_at=now,
            )
        )
        async with self._transaction(f"update item {item.identity}") as session:
            result = await session.execute(stmt)

        if result.rowcount == 0:
            self.logger.debug("update matched no row for %s", item.identity)
            return False

        item.last_checked_at = now
        return True

    async def get_by_identity(self, identity: str) -> Item | None:
        async with self._transaction(f"get item {identity}") as session:
            result = await session.execute(select(Item).where(Item.identity == identity))
            return result.scalar_one_or_none()

    async def exists(self, identity: str) -> bool:
        async with self._transaction(f"check item {identity}") as session:
            result = await session.execute(
                select(func.count()).select_from(Item).where(Item.identity == identity)
            )
            return result.scalar_one() > 0

    async def _first(self, session: AsyncSession, query: Select) -> Item | None:
        result = await session.execute(query.limit(1))
        return result.scalars().first()

    def _oldest_published(self, status: ItemStatus) -> Select:
        return (
            select(Item)
            .where(Item.status == status)
            .order_by(asc(Item.published_at), asc(Item.identity))
        )

    def _least_recently_checked_deferred(self, stage: Stage) -> Select:
        stage_filter = Item.deferred_stage == stage
        if stage == Stage.SCREENING:
            stage_filter = or_(stage_filter, Item.deferred_stage == None)  # noqa: E711
        return (
            select(Item)
            .where(
                Item.status == ItemStatus.DEFERRED,
                stage_filter,
                Item.retry_count < self.max_deferred_retry_count,
            )
            .order_by(asc(Item.last_checked_at), asc(Item.identity))
        )

    async def _select_next(self, stage: Stage, fresh_status: ItemStatus) -> Item | None:
        async with self._transaction(f"select item for {stage.value}") as session:
            item = await self._first(session, self._oldest_published(fresh_status))
            if item is None:
                item = await self._first(session, self._least_recently_checked_deferred(stage))
            if item is not None:
                # Selection counts as a check
                item.last_checked_at = utcnow()
        return item

    async def select_next_for_screening(self) -> Item | None:
        """
        Next item to screen.

        The oldest unprocessed item by published_at; otherwise the screening
        deferral checked longest ago that still has retries left.
        """
        return await self._select_next(Stage.SCREENING, ItemStatus.UNPROCESSED)

    async def select_next_for_summarization(self) -> Item | None:
        """
        Next item to summarize and publish.

        The oldest pending item by published_at; otherwise the summarization
        deferral checked longest ago that still has retries left.
        """
        return await self._select_next(Stage.SUMMARIZATION, ItemStatus.PENDING)

    async def count_by_status(self, status: ItemStatus) -> int:
        async with self._transaction(f"count {status.value} items") as session:
            result = await session.execute(
                select(func.count()).select_from(Item).where(Item.status == status)
            )
            return result.scalar_one()

    async def count_all_statuses(self) -> dict[ItemStatus, int]:
        """Item count for every status, zero included."""
        async with self._transaction("count items by status") as session:
            result = await session.execute(
                select(Item.status, func.count()).group_by(Item.status)
            )
            counts = {status: 0 for status in ItemStatus}
            for status, count in result.all():
                counts[ItemStatus(status)] = count
            return counts

    async def latest_published_at(self) -> datetime | None:
        async with self._transaction("get latest published_at") as session:
            result = await session.execute(select(func.max(Item.published_at)))
            return result.scalar_one_or_none()

    async def list_items(
        self,
        status: ItemStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Item]:
        """Items newest first, optionally filtered by status."""
        query = select(Item).order_by(desc(Item.published_at), asc(Item.identity))
        if status is not None:
            query = query.where(Item.status == status)
        async with self._transaction("list items") as session:
            result = await session.execute(query.limit(limit).offset(offset))
            return list(result.scalars().all())

    async def list_exhausted(self) -> list[Item]:
        """Deferred items that ran out of retries and will never be selected again."""
        query = (
            select(Item)
            .where(
                Item.status == ItemStatus.DEFERRED,
                Item.retry_count >= self.max_deferred_retry_count,
            )
            .order_by(asc(Item.last_checked_at))
        )
        async with self._transaction("list exhausted items") as session:
            result = await session.execute(query)
            return list(result.scalars().all())
