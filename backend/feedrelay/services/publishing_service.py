"""Publishing driver - summarizes a pending item and posts the digest."""

import logging
from typing import Protocol

from feedrelay.agents.base import GenerationOracle
from feedrelay.exceptions import ContentFetchError, OracleError, PublishError
from feedrelay.models import Item, ItemReason, ItemStatus, Stage
from feedrelay.schemas.report import StageName, StageOutcome, StageReport
from feedrelay.schemas.summary import SummaryResult
from feedrelay.services.item_store import ItemStore
from feedrelay.services.screening_service import ContentSource
from feedrelay.services.stage_driver import StageDriver


class SummarySink(Protocol):
    async def post_summary(self, item: Item, summary: SummaryResult) -> object: ...


class PublishingService(StageDriver):
    """Summarizes and publishes one pending (or summarization-deferred) item per invocation."""

    STAGE = StageName.SUMMARIZATION

    def __init__(
        self,
        store: ItemStore,
        extractor: ContentSource,
        generator: GenerationOracle,
        sink: SummarySink,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(store, timeout, logger)
        self.extractor = extractor
        self.generator = generator
        self.sink = sink

    async def _run(self, deadline: float | None) -> StageReport:
        item = await self.store.select_next_for_summarization()
        if item is None:
            self.logger.info("no item to post")
            return self._report(StageOutcome.IDLE)
        self._current = item
        self.logger.info("summarizing %s (status %s, retries %d)", item.identity, item.status.value, item.retry_count)

        try:
            page = await self._bounded(self.extractor.fetch(item.identity), deadline)
        except (ContentFetchError, TimeoutError) as e:
            return await self._defer(item, Stage.SUMMARIZATION, ItemReason.DOWNLOAD_FAILED, e)

        try:
            summary = await self._bounded(self.generator.summarize(page), deadline)
        except ContentFetchError as e:
            return await self._defer(item, Stage.SUMMARIZATION, ItemReason.DOWNLOAD_FAILED, e)
        except (OracleError, TimeoutError) as e:
            return await self._defer(item, Stage.SUMMARIZATION, ItemReason.API_FAILED, e)

        try:
            await self._bounded(self.sink.post_summary(item, summary), deadline)
        except (PublishError, TimeoutError) as e:
            return await self._defer(item, Stage.SUMMARIZATION, ItemReason.API_FAILED, e)

        return await self._advance(item, ItemStatus.PROCESSED)
