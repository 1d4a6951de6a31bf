"""Shared plumbing for the judgment and generation oracles.

An oracle turns an extracted page into either a screening verdict or a
structured digest. Provider classes only implement ``_generate``; prompt
assembly, bounded retries and response parsing live here.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_fixed

from feedrelay.config import Settings
from feedrelay.exceptions import ContentFetchError, OracleError
from feedrelay.schemas.content import PageContent
from feedrelay.schemas.summary import ScreeningResult, SummaryResult

T = TypeVar("T", bound=BaseModel)


class JudgmentOracle(Protocol):
    async def evaluate(self, page: PageContent) -> ScreeningResult: ...


class GenerationOracle(Protocol):
    async def summarize(self, page: PageContent) -> SummaryResult: ...


@dataclass
class OracleConfig:
    """Configuration for the oracles."""

    screening_model: str
    summarizing_model: str
    screening_prompt: str
    summarizing_prompt: str
    max_tokens: int = 8192
    retry_count: int = 3
    retry_interval_sec: float = 10.0
    max_attachment_bytes: int = 50 * 1024 * 1024
    download_dir: str = "./data/downloads"
    keep_local_copy: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "OracleConfig":
        return cls(
            screening_model=settings.screening_model,
            summarizing_model=settings.summarizing_model,
            screening_prompt=settings.screening_prompt,
            summarizing_prompt=settings.summarizing_prompt,
            max_tokens=settings.llm_max_tokens,
            retry_count=settings.llm_retry_count,
            retry_interval_sec=settings.llm_retry_interval_sec,
            max_attachment_bytes=settings.max_attachment_bytes,
            download_dir=settings.download_dir,
            keep_local_copy=settings.keep_local_copy,
        )


def parse_json_model(text: str, model: type[T]) -> T:
    """Validate an LLM reply as model, tolerating code fences and chatter around the JSON."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]

    json_match = re.search(r"\{[\s\S]*\}", text)
    if json_match:
        text = json_match.group(0)

    try:
        return model.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        raise OracleError(f"failed to parse {model.__name__} from response: {e}") from e


def describe_attachments(page: PageContent, max_bytes: int) -> str:
    """Plain-text list of the attachments, for prompts that do not upload them."""
    if not page.attachments:
        return "Attached documents: none"
    lines = ["Attached documents:"]
    for attachment in page.attachments:
        note = " (too large, not provided)" if attachment.size > max_bytes else ""
        lines.append(f"- {attachment.url} ({attachment.size} bytes){note}")
    return "\n".join(lines)


class LLMOracle(ABC):
    """Judgment and generation oracle backed by one LLM provider."""

    provider = "base"

    def __init__(self, config: OracleConfig, logger: logging.Logger | None = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def _generate(
        self,
        model: str,
        page: PageContent,
        prompt: str,
        schema: type[BaseModel],
        attachments: list[Any],
    ) -> str:
        """Send the page, prepared attachments and prompt to the provider; return the reply text."""

    async def _prepare_attachments(self, page: PageContent) -> list[Any]:
        """Provider-specific attachment parts for the documents within the size limit."""
        return []

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            "%s call failed, attempt %d/%d, retrying in %ss: %s",
            self.provider,
            retry_state.attempt_number,
            self.config.retry_count + 1,
            self.config.retry_interval_sec,
            error,
        )

    async def _generate_with_retry(
        self,
        model: str,
        page: PageContent,
        prompt: str,
        schema: type[T],
        include_attachments: bool,
    ) -> T:
        """Call the provider with a fixed-interval retry; give up with OracleError."""
        attempts = self.config.retry_count + 1
        try:
            attachments = await self._prepare_attachments(page) if include_attachments else []
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_fixed(self.config.retry_interval_sec),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    text = await self._generate(model, page, prompt, schema, attachments)
                    return parse_json_model(text, schema)
        except (ContentFetchError, OracleError):
            raise
        except Exception as e:
            self.logger.error("all %s calls failed after %d attempts: %s", self.provider, attempts, e)
            raise OracleError(f"{self.provider} API failed after {attempts} attempts: {e}") from e
        raise OracleError(f"{self.provider} API returned no response")

    async def evaluate(self, page: PageContent) -> ScreeningResult:
        """Judge whether the page is worth summarizing."""
        prompt = "\n\n".join(
            [
                self.config.screening_prompt,
                describe_attachments(page, self.config.max_attachment_bytes),
            ]
        )
        result = await self._generate_with_retry(
            self.config.screening_model, page, prompt, ScreeningResult, include_attachments=False
        )
        self.logger.info("screening result for %s: %s", page.url, result.verdict.value)
        return result

    async def summarize(self, page: PageContent) -> SummaryResult:
        """Produce a structured digest of the page and its attachments."""
        return await self._generate_with_retry(
            self.config.summarizing_model,
            page,
            self.config.summarizing_prompt,
            SummaryResult,
            include_attachments=True,
        )

    async def close(self) -> None:
        pass
