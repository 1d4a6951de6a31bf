"""Schemas returned by the judgment and generation oracles."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Verdict(str, Enum):
    """Judgment oracle answer."""

    YES = "yes"
    NO = "no"
    WAIT = "wait"


class ScreeningResult(BaseModel):
    reasoning: str = ""
    verdict: Verdict

    @field_validator("verdict", mode="before")
    @classmethod
    def normalize_verdict(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class DocumentSummary(BaseModel):
    metadata: str = ""
    key_points: list[str] = Field(default_factory=list)
    summary: str = ""


class SummaryResult(BaseModel):
    """Structured digest of an item page and its attachments."""

    documents: list[DocumentSummary] = Field(default_factory=list)
    first_summary: str = ""
    omissibles: list[str] = Field(default_factory=list)
    missed_items: list[str] = Field(default_factory=list)
    final_summary: str = Field(..., min_length=1)
