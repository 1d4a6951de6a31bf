"""Agents package - LLM oracles using Gemini and Claude."""

import logging

import httpx

from feedrelay.agents.base import (
    GenerationOracle,
    JudgmentOracle,
    LLMOracle,
    OracleConfig,
    parse_json_model,
)
from feedrelay.config import Settings

__all__ = [
    "GenerationOracle",
    "JudgmentOracle",
    "LLMOracle",
    "OracleConfig",
    "get_oracle",
    "parse_json_model",
]


def get_oracle(
    settings: Settings,
    http_client: httpx.AsyncClient,
    logger: logging.Logger | None = None,
) -> LLMOracle:
    """Get the oracle for the configured LLM provider."""
    config = OracleConfig.from_settings(settings)

    if settings.llm_provider == "anthropic":
        from feedrelay.agents.claude_oracle import ClaudeOracle

        return ClaudeOracle(settings.anthropic_api_key, config, logger)

    from feedrelay.agents.gemini_oracle import GeminiOracle

    return GeminiOracle(settings.gemini_api_key, config, http_client, logger)
