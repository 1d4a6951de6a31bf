"""Tests for the shared oracle plumbing."""

import json

import httpx
import pytest

from feedrelay.agents import OracleConfig, get_oracle, parse_json_model
from feedrelay.agents.base import LLMOracle, describe_attachments
from feedrelay.config import Settings
from feedrelay.exceptions import ContentNetworkError, OracleError
from feedrelay.schemas.content import Attachment, PageContent
from feedrelay.schemas.summary import ScreeningResult, SummaryResult, Verdict

PAGE = PageContent(
    url="https://www.example.go.jp/news/1.html",
    html="<div>body</div>",
    attachments=[
        Attachment(url="https://www.example.go.jp/a.pdf", size=1024),
        Attachment(url="https://www.example.go.jp/b.pdf", size=10_000),
    ],
)


def config(**overrides) -> OracleConfig:
    options = {
        "screening_model": "screen-model",
        "summarizing_model": "summary-model",
        "screening_prompt": "Is this worth it?",
        "summarizing_prompt": "Summarize this.",
        "retry_count": 2,
        "retry_interval_sec": 0,
        "max_attachment_bytes": 5_000,
    }
    options.update(overrides)
    return OracleConfig(**options)


class ScriptedOracle(LLMOracle):
    """Oracle whose provider replies come from a script."""

    provider = "scripted"

    def __init__(self, *replies, prepare_error=None, **overrides):
        super().__init__(config(**overrides))
        self.replies = list(replies)
        self.prepare_error = prepare_error
        self.calls: list[tuple[str, str, list]] = []

    async def _prepare_attachments(self, page):
        if self.prepare_error is not None:
            raise self.prepare_error
        return [a.url for a in page.attachments_within(self.config.max_attachment_bytes)]

    async def _generate(self, model, page, prompt, schema, attachments):
        self.calls.append((model, prompt, attachments))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class TestParseJsonModel:
    """Tests for parsing LLM replies."""

    def test_plain_json(self):
        result = parse_json_model('{"reasoning": "new policy", "verdict": "yes"}', ScreeningResult)

        assert result.verdict == Verdict.YES
        assert result.reasoning == "new policy"

    def test_code_fence_and_chatter(self):
        text = '```json\nHere you go: {"reasoning": "", "verdict": "Wait"}\n```'

        assert parse_json_model(text, ScreeningResult).verdict == Verdict.WAIT

    def test_unknown_verdict(self):
        with pytest.raises(OracleError):
            parse_json_model('{"verdict": "maybe"}', ScreeningResult)

    def test_not_json(self):
        with pytest.raises(OracleError):
            parse_json_model("I cannot help with that.", ScreeningResult)

    def test_empty_final_summary_rejected(self):
        with pytest.raises(OracleError):
            parse_json_model('{"first_summary": "x", "final_summary": ""}', SummaryResult)


class TestRetry:
    """Tests for bounded retries."""

    async def test_evaluate_uses_screening_model_without_attachments(self):
        oracle = ScriptedOracle('{"verdict": "no"}')

        result = await oracle.evaluate(PAGE)

        assert result.verdict == Verdict.NO
        model, prompt, attachments = oracle.calls[0]
        assert model == "screen-model"
        assert prompt.startswith("Is this worth it?")
        assert "https://www.example.go.jp/b.pdf (10000 bytes) (too large, not provided)" in prompt
        assert attachments == []

    async def test_summarize_with_attachments(self):
        reply = json.dumps({"first_summary": "draft", "final_summary": "final"})
        oracle = ScriptedOracle(reply)

        result = await oracle.summarize(PAGE)

        assert result.final_summary == "final"
        model, prompt, attachments = oracle.calls[0]
        assert model == "summary-model"
        assert prompt == "Summarize this."
        assert attachments == ["https://www.example.go.jp/a.pdf"]

    async def test_recovers_within_retry_budget(self):
        oracle = ScriptedOracle(RuntimeError("503"), "not json", '{"verdict": "yes"}')

        result = await oracle.evaluate(PAGE)

        assert result.verdict == Verdict.YES
        assert len(oracle.calls) == 3

    async def test_gives_up_after_retry_budget(self):
        oracle = ScriptedOracle(*[RuntimeError("503")] * 5)

        with pytest.raises(OracleError):
            await oracle.evaluate(PAGE)

        assert len(oracle.calls) == 3

    async def test_attachment_failure_not_retried(self):
        oracle = ScriptedOracle('{"final_summary": "x"}', prepare_error=ContentNetworkError("reset"))

        with pytest.raises(ContentNetworkError):
            await oracle.summarize(PAGE)

        assert oracle.calls == []


class TestHelpers:
    def test_describe_without_attachments(self):
        page = PageContent(url="https://www.example.go.jp/news/1.html", html="")

        assert describe_attachments(page, 100) == "Attached documents: none"

    def test_get_oracle_by_provider(self):
        http = httpx.AsyncClient()
        anthropic_oracle = get_oracle(
            Settings(llm_provider="anthropic", anthropic_api_key="test-key"), http
        )
        gemini_oracle = get_oracle(Settings(llm_provider="gemini"), http)

        assert anthropic_oracle.provider == "anthropic"
        assert gemini_oracle.provider == "gemini"
        assert gemini_oracle.config.retry_count == Settings().llm_retry_count
