"""Gemini-powered judgment and generation oracle."""

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from uuid import uuid4

import httpx
from google import genai
from google.genai import types
from pydantic import BaseModel

from feedrelay.agents.base import LLMOracle, OracleConfig
from feedrelay.exceptions import ContentFetchError
from feedrelay.schemas.content import Attachment, PageContent


class GeminiOracle(LLMOracle):
    """
    Oracle that sends the page HTML to Gemini with a JSON response schema.

    For summaries, PDF attachments within the size limit are downloaded and
    uploaded through the Files API so the model reads the documents
    themselves. Other attachment types are skipped.
    """

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        config: OracleConfig,
        http_client: httpx.AsyncClient,
        logger: logging.Logger | None = None,
    ):
        super().__init__(config, logger)
        self.api_key = api_key
        self.http = http_client
        self._client: genai.Client | None = None

    @property
    def client(self) -> genai.Client:
        # Created on first use; the SDK rejects a missing key at construction
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _download(self, attachment: Attachment) -> Path:
        """Download one attachment into the download directory."""
        directory = Path(self.config.download_dir)
        directory.mkdir(parents=True, exist_ok=True)
        local_path = directory / f"{uuid4()}.pdf"

        self.logger.info("downloading %s to %s", attachment.url, local_path)
        try:
            async with self.http.stream("GET", attachment.url) as response:
                response.raise_for_status()
                with open(local_path, "wb") as out:
                    async for chunk in response.aiter_bytes():
                        out.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            local_path.unlink(missing_ok=True)
            raise ContentFetchError(f"failed to download {attachment.url}: {e}") from e
        return local_path

    async def _prepare_attachments(self, page: PageContent) -> list[Any]:
        parts = []
        for attachment in page.attachments:
            if attachment.size > self.config.max_attachment_bytes:
                self.logger.debug(
                    "skipping %s: %d bytes over limit %d",
                    attachment.url,
                    attachment.size,
                    self.config.max_attachment_bytes,
                )
                continue
            if os.path.splitext(urlparse(attachment.url).path)[1].lower() != ".pdf":
                self.logger.debug("skipping non-PDF document %s", attachment.url)
                continue

            local_path = await self._download(attachment)
            try:
                uploaded = await self.client.aio.files.upload(file=str(local_path))
            finally:
                if not self.config.keep_local_copy:
                    local_path.unlink(missing_ok=True)
            self.logger.debug("uploaded %s as %s", attachment.url, uploaded.uri)
            parts.append(types.Part.from_uri(file_uri=uploaded.uri, mime_type=uploaded.mime_type))
        return parts

    async def _generate(
        self,
        model: str,
        page: PageContent,
        prompt: str,
        schema: type[BaseModel],
        attachments: list[Any],
    ) -> str:
        parts = [types.Part.from_bytes(data=page.html.encode("utf-8"), mime_type="text/html")]
        parts.extend(attachments)
        parts.append(types.Part.from_text(text=prompt))

        response = await self.client.aio.models.generate_content(
            model=model,
            contents=[types.Content(role="user", parts=parts)],
            config=types.GenerateContentConfig(
                temperature=0,
                max_output_tokens=self.config.max_tokens,
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        if not response.text:
            raise ValueError("no content generated by Gemini API")
        self.logger.debug("gemini response: %s", response.text)
        return response.text
