"""Base class for the pipeline drivers.

Design:
    - One ``run()`` call is one invocation: select at most one item, talk to
      the collaborators, write one Store transition.
    - ``run()`` is the fault boundary. It returns a StageReport and never
      raises, except for cancellation.
    - Collaborator failures and timeouts become a deferred transition with an
      incremented retry count. Store failures and unexpected faults are
      reported without attempting any further write.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

from feedrelay.exceptions import DriverFaultError, StoreError
from feedrelay.models import Item, ItemReason, ItemStatus, Stage
from feedrelay.schemas.report import StageError, StageName, StageOutcome, StageReport
from feedrelay.services.item_store import ItemStore

T = TypeVar("T")


class StageDriver(ABC):
    """Abstract base class for the ingestion, screening and publishing drivers."""

    # Stage reported by this driver - override in subclasses
    STAGE: StageName

    def __init__(
        self,
        store: ItemStore,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize driver.

        Args:
            store: Item store shared by all drivers
            timeout: Default deadline in seconds for one invocation, None for no limit
            logger: Logger for this driver
        """
        self.store = store
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._current: Item | None = None

    @abstractmethod
    async def _run(self, deadline: float | None) -> StageReport:
        """
        Execute one invocation.

        Args:
            deadline: Event loop time by which every external call must be done

        Returns:
            Report of what was done
        """

    async def run(self, timeout: float | None = None) -> StageReport:
        """Run one invocation inside the fault boundary."""
        timeout = self.timeout if timeout is None else timeout
        deadline = asyncio.get_running_loop().time() + timeout if timeout is not None else None
        self._current = None

        self.logger.info("start %s", self.STAGE.value)
        try:
            report = await self._run(deadline)
        except asyncio.CancelledError:
            raise
        except StoreError as e:
            self.logger.error("%s aborted by store error: %s", self.STAGE.value, e)
            report = self._failed(e)
        except Exception as e:
            self.logger.exception("unexpected fault in %s", self.STAGE.value)
            fault = DriverFaultError(f"unexpected fault in {self.STAGE.value}: {type(e).__name__}: {e}")
            report = self._failed(fault)
        finally:
            self._current = None

        self.logger.info("finish %s: %s", self.STAGE.value, report.outcome.value)
        return report

    async def _bounded(self, awaitable: Awaitable[T], deadline: float | None) -> T:
        """Await an external call, raising TimeoutError once the deadline passes."""
        if deadline is None:
            return await awaitable
        async with asyncio.timeout_at(deadline):
            return await awaitable

    def _report(
        self,
        outcome: StageOutcome,
        item: Item | None = None,
        error: BaseException | None = None,
        count: int | None = None,
    ) -> StageReport:
        return StageReport(
            stage=self.STAGE,
            outcome=outcome,
            identity=item.identity if item else None,
            status=item.status if item else None,
            reason=item.reason if item else None,
            retry_count=item.retry_count if item else None,
            count=count,
            error=StageError.from_exception(error) if error else None,
        )

    def _failed(self, error: BaseException) -> StageReport:
        # The in-memory item may hold an uncommitted transition; report identity only
        report = self._report(StageOutcome.FAILED, error=error)
        if self._current is not None:
            report.identity = self._current.identity
        return report

    async def _commit(self, item: Item) -> None:
        if not await self.store.update(item):
            self.logger.warning("item %s disappeared before its update", item.identity)

    async def _advance(
        self,
        item: Item,
        status: ItemStatus,
        reason: ItemReason = ItemReason.NONE,
    ) -> StageReport:
        """Move the item forward. The retry count is left as is."""
        item.status = status
        item.reason = reason
        item.deferred_stage = None
        await self._commit(item)
        self.logger.info("%s -> %s (%s)", item.identity, status.value, reason.value)
        return self._report(StageOutcome.ADVANCED, item)

    async def _defer(
        self,
        item: Item,
        stage: Stage,
        reason: ItemReason,
        error: BaseException | None = None,
    ) -> StageReport:
        """Set the item aside for a later retry of the same stage."""
        item.status = ItemStatus.DEFERRED
        item.reason = reason
        item.deferred_stage = stage
        item.retry_count += 1
        if item.is_exhausted(self.store.max_deferred_retry_count):
            self.logger.warning(
                "%s reached the retry limit (%d) after %s, giving up",
                item.identity,
                item.retry_count,
                reason.value,
            )
            item.reason = ItemReason.RETRY_LIMIT_EXCEEDED

        await self._commit(item)
        if error is not None:
            self.logger.warning("%s deferred (%s): %s", item.identity, reason.value, error)
        else:
            self.logger.info("%s deferred (%s)", item.identity, reason.value)
        return self._report(StageOutcome.DEFERRED, item, error)
