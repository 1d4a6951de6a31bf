"""Schemas exchanged with the feed and content collaborators."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator


class FeedEntry(BaseModel):
    """One entry of the polled feed."""

    identity: str = Field(..., min_length=1, description="Entry URL, used as dedup key")
    title: str = ""
    published_at: datetime | None = None

    @field_validator("published_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class Attachment(BaseModel):
    """Document linked from an item page."""

    url: str
    size: int = Field(default=0, ge=0, description="Size in bytes, 0 when unknown")


class PageContent(BaseModel):
    """Extracted page body and its attachments."""

    url: str
    html: str
    attachments: list[Attachment] = Field(default_factory=list)

    def attachments_within(self, max_bytes: int) -> list[Attachment]:
        """Attachments small enough to hand to an oracle."""
        return [a for a in self.attachments if a.size <= max_bytes]
