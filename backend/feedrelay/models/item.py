"""Item model: one row per feed entry tracked through the pipeline."""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from feedrelay.db.types import UTCDateTime


class ItemStatus(str, Enum):
    """Lifecycle stage of an item."""

    UNPROCESSED = "unprocessed"
    DEFERRED = "deferred"
    PENDING = "pending"
    PROCESSED = "processed"


class ItemReason(str, Enum):
    """Why an item is deferred or processed. Only meaningful with those statuses."""

    NONE = "none"
    NOT_VALUABLE = "not_valuable"
    PAGE_NOT_READY = "page_not_ready"
    DOWNLOAD_FAILED = "download_failed"
    OVERSIZED_SKIPPED = "oversized_skipped"
    API_FAILED = "api_failed"
    RETRY_LIMIT_EXCEEDED = "retry_limit_exceeded"


class Stage(str, Enum):
    """Pipeline stage an item can be deferred from."""

    SCREENING = "screening"
    SUMMARIZATION = "summarization"


def utcnow() -> datetime:
    return datetime.now(UTC)


class Item(SQLModel, table=True):
    """
    Feed item and its pipeline state.
    identity, title, published_at and created_at never change after insert.
    """

    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_status_published_at", "status", "published_at"),
        Index("ix_items_status_last_checked_at", "status", "last_checked_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    identity: str = Field(max_length=2048, unique=True, index=True)
    title: str = Field(default="")
    published_at: datetime = Field(sa_type=UTCDateTime)

    # Pipeline state
    status: ItemStatus = Field(default=ItemStatus.UNPROCESSED)
    reason: ItemReason = Field(default=ItemReason.NONE)
    retry_count: int = Field(default=0, ge=0)
    deferred_stage: Stage | None = Field(default=None)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    last_checked_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    def is_exhausted(self, max_retry_count: int) -> bool:
        """True once the item can no longer be selected after a deferral."""
        return self.retry_count >= max_retry_count
