"""Result of one driver invocation."""

from enum import Enum

from pydantic import BaseModel

from feedrelay.models import ItemReason, ItemStatus


class StageName(str, Enum):
    INGESTION = "ingestion"
    SCREENING = "screening"
    SUMMARIZATION = "summarization"


class StageOutcome(str, Enum):
    IDLE = "idle"  # nothing to do
    ADVANCED = "advanced"  # item moved forward, or feed ingested
    DEFERRED = "deferred"  # transient failure recorded on the item
    FAILED = "failed"  # nothing committed for the item


class StageError(BaseModel):
    type: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "StageError":
        return cls(type=type(exc).__name__, message=str(exc) or repr(exc))


class StageReport(BaseModel):
    """What one driver invocation did. error is set whenever something went wrong."""

    stage: StageName
    outcome: StageOutcome
    identity: str | None = None
    status: ItemStatus | None = None
    reason: ItemReason | None = None
    retry_count: int | None = None
    count: int | None = None
    error: StageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
