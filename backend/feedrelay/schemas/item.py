"""Item schemas for API responses."""

from datetime import datetime

from pydantic import BaseModel

from feedrelay.models import ItemReason, ItemStatus, Stage


class ItemResponse(BaseModel):
    """Schema for item responses."""

    identity: str
    title: str
    published_at: datetime
    status: ItemStatus
    reason: ItemReason
    retry_count: int
    deferred_stage: Stage | None = None
    created_at: datetime
    last_checked_at: datetime

    class Config:
        from_attributes = True


class ItemListResponse(BaseModel):
    """Schema for paginated item list response."""

    items: list[ItemResponse]
    total: int
    limit: int
    offset: int


class StatsResponse(BaseModel):
    """Item counts per status."""

    counts: dict[ItemStatus, int]
    exhausted: int
