"""Screening driver - asks the judgment oracle whether an item is worth a summary."""

import logging
from typing import Protocol

from feedrelay.agents.base import JudgmentOracle
from feedrelay.exceptions import ContentFetchError, OracleError, PublishError
from feedrelay.models import Item, ItemReason, ItemStatus, Stage
from feedrelay.schemas.content import PageContent
from feedrelay.schemas.report import StageName, StageOutcome, StageReport
from feedrelay.schemas.summary import Verdict
from feedrelay.services.item_store import ItemStore
from feedrelay.services.stage_driver import StageDriver


class ContentSource(Protocol):
    async def fetch(self, url: str) -> PageContent: ...


class NotValuableSink(Protocol):
    async def post_not_valuable(self, item: Item) -> object: ...


class ScreeningService(StageDriver):
    """
    Screens one unprocessed (or screening-deferred) item per invocation.

    yes  -> pending
    no   -> processed / not_valuable, after announcing it on the sink
    wait -> deferred / page_not_ready
    Fetch failures defer with download_failed, oracle and sink failures with
    api_failed.
    """

    STAGE = StageName.SCREENING

    def __init__(
        self,
        store: ItemStore,
        extractor: ContentSource,
        judge: JudgmentOracle,
        sink: NotValuableSink,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(store, timeout, logger)
        self.extractor = extractor
        self.judge = judge
        self.sink = sink

    async def _run(self, deadline: float | None) -> StageReport:
        item = await self.store.select_next_for_screening()
        if item is None:
            self.logger.info("no item to screen")
            return self._report(StageOutcome.IDLE)
        self._current = item
        self.logger.info("screening %s (status %s, retries %d)", item.identity, item.status.value, item.retry_count)

        try:
            page = await self._bounded(self.extractor.fetch(item.identity), deadline)
        except (ContentFetchError, TimeoutError) as e:
            return await self._defer(item, Stage.SCREENING, ItemReason.DOWNLOAD_FAILED, e)

        try:
            result = await self._bounded(self.judge.evaluate(page), deadline)
        except ContentFetchError as e:
            return await self._defer(item, Stage.SCREENING, ItemReason.DOWNLOAD_FAILED, e)
        except (OracleError, TimeoutError) as e:
            return await self._defer(item, Stage.SCREENING, ItemReason.API_FAILED, e)

        if result.verdict == Verdict.YES:
            return await self._advance(item, ItemStatus.PENDING)

        if result.verdict == Verdict.NO:
            try:
                await self._bounded(self.sink.post_not_valuable(item), deadline)
            except (PublishError, TimeoutError) as e:
                return await self._defer(item, Stage.SCREENING, ItemReason.API_FAILED, e)
            return await self._advance(item, ItemStatus.PROCESSED, ItemReason.NOT_VALUABLE)

        return await self._defer(item, Stage.SCREENING, ItemReason.PAGE_NOT_READY)
