"""Claude-powered judgment and generation oracle."""

import json
import logging
from typing import Any

import anthropic
from pydantic import BaseModel

from feedrelay.agents.base import LLMOracle, OracleConfig
from feedrelay.schemas.content import PageContent


class ClaudeOracle(LLMOracle):
    """
    Oracle backed by Claude.

    PDF attachments are passed as URL document blocks, so Claude fetches them
    itself; nothing is downloaded locally.
    """

    provider = "anthropic"

    RESPONSE_INSTRUCTION = """Respond ONLY with valid JSON matching this JSON schema, no markdown:
{schema}"""

    def __init__(
        self,
        api_key: str,
        config: OracleConfig,
        logger: logging.Logger | None = None,
    ):
        super().__init__(config, logger)
        self.client = anthropic.AsyncAnthropic(api_key=api_key)

    async def _prepare_attachments(self, page: PageContent) -> list[Any]:
        blocks = []
        for attachment in page.attachments_within(self.config.max_attachment_bytes):
            if not attachment.url.lower().endswith(".pdf"):
                continue
            blocks.append({"type": "document", "source": {"type": "url", "url": attachment.url}})
        skipped = len(page.attachments) - len(blocks)
        if skipped:
            self.logger.debug("skipping %d attachments of %s", skipped, page.url)
        return blocks

    async def _generate(
        self,
        model: str,
        page: PageContent,
        prompt: str,
        schema: type[BaseModel],
        attachments: list[Any],
    ) -> str:
        instruction = self.RESPONSE_INSTRUCTION.format(schema=json.dumps(schema.model_json_schema()))
        content: list[dict[str, Any]] = [
            {"type": "text", "text": f'<page url="{page.url}">\n{page.html}\n</page>'},
            *attachments,
            {"type": "text", "text": f"{prompt}\n\n{instruction}"},
        ]
        response = await self.client.messages.create(
            model=model,
            max_tokens=self.config.max_tokens,
            temperature=0,
            messages=[{"role": "user", "content": content}],
        )
        text = "".join(block.text for block in response.content if block.type == "text")
        if not text:
            raise ValueError("no content generated by Claude API")
        return text

    async def close(self) -> None:
        await self.client.close()
