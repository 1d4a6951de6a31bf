"""Pipeline endpoints - one driver invocation per request."""

from fastapi import APIRouter, Depends

from feedrelay.api.v1.dependencies import get_bot, get_store
from feedrelay.models import ItemStatus
from feedrelay.schemas.item import StatsResponse
from feedrelay.schemas.report import StageReport
from feedrelay.services.item_store import ItemStore
from feedrelay.services.pipeline import FeedRelayBot

router = APIRouter()


@router.post("/update", response_model=StageReport)
async def update_items(bot: FeedRelayBot = Depends(get_bot)) -> StageReport:
    """Fetch the feed and store new items."""
    return await bot.refresh_feed_items()


@router.post("/screen", response_model=StageReport)
async def screen_item(bot: FeedRelayBot = Depends(get_bot)) -> StageReport:
    """Screen the next candidate item."""
    return await bot.screen_item()


@router.post("/post", response_model=StageReport)
async def post_summary(bot: FeedRelayBot = Depends(get_bot)) -> StageReport:
    """Summarize and publish the next pending item."""
    return await bot.post_summary()


@router.post("/run", response_model=list[StageReport])
async def run_all(bot: FeedRelayBot = Depends(get_bot)) -> list[StageReport]:
    """Run update, screen and post in order."""
    return await bot.run_all()


@router.get("/stats", response_model=StatsResponse)
async def get_stats(store: ItemStore = Depends(get_store)) -> StatsResponse:
    """
    Item counts per status.

    exhausted counts deferred items that ran out of retries and need an operator.
    """
    counts = await store.count_all_statuses()
    exhausted = await store.list_exhausted()
    return StatsResponse(
        counts={status: counts.get(status, 0) for status in ItemStatus},
        exhausted=len(exhausted),
    )
