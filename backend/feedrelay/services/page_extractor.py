"""Page extractor - fetches an item page, its main content and PDF attachments."""

import logging
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from feedrelay.exceptions import ContentNetworkError, ContentNotFoundError, ContentParseError
from feedrelay.schemas.content import Attachment, PageContent


class PageExtractor:
    """
    Extracts the content block of an item page.

    The page is decoded with a fixed encoding when one is configured (the
    ministry pages are Shift-JIS and do not always declare it), then the
    element matching ``content_selector`` is kept. Every PDF linked from that
    element becomes an attachment, sized with a HEAD request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        content_selector: str = "div.contentsBody",
        page_encoding: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self.http = http_client
        self.content_selector = content_selector
        self.page_encoding = page_encoding
        self.logger = logger or logging.getLogger(__name__)

    async def _fetch_html(self, url: str) -> str:
        try:
            response = await self.http.get(url)
        except httpx.HTTPError as e:
            raise ContentNetworkError(f"failed to get HTML from {url}: {e}") from e

        if response.status_code in (404, 410):
            raise ContentNotFoundError(f"page not found: {url} (status {response.status_code})")
        if response.status_code != 200:
            raise ContentNetworkError(f"failed to get HTML from {url}: status code {response.status_code}")

        if self.page_encoding:
            return response.content.decode(self.page_encoding, errors="replace")
        return response.text

    def extract_content(self, html: str) -> Tag:
        """Return the content element, or raise ContentParseError."""
        soup = BeautifulSoup(html, "lxml")
        node = soup.select_one(self.content_selector)
        if node is None:
            raise ContentParseError(f"{self.content_selector} not found")
        return node

    def find_document_links(self, node: Tag, base_url: str) -> list[str]:
        """Absolute URLs of PDFs linked from node, in page order, without repeats."""
        links: list[str] = []
        for anchor in node.find_all("a", href=True):
            if not isinstance(anchor, Tag):
                continue
            href = anchor.get("href")
            if not isinstance(href, str) or not href.lower().endswith(".pdf"):
                continue
            resolved = urljoin(base_url, href)
            if resolved not in links:
                links.append(resolved)
        return links

    async def document_size(self, url: str) -> int:
        """Content-Length of url from a HEAD request; 0 when it cannot be determined."""
        try:
            response = await self.http.head(url)
        except httpx.HTTPError as e:
            self.logger.warning("could not get size of %s: %s", url, e)
            return 0
        if response.status_code != 200:
            self.logger.warning("HEAD %s returned status %d", url, response.status_code)
            return 0
        try:
            size = int(response.headers.get("content-length", ""))
        except ValueError:
            size = -1
        if size < 0:
            self.logger.warning("no usable Content-Length for %s", url)
            return 0
        return size

    async def fetch(self, url: str) -> PageContent:
        """Fetch url and return its content block with attachments."""
        html = await self._fetch_html(url)
        node = self.extract_content(html)

        try:
            attachments = []
            for link in self.find_document_links(node, url):
                attachments.append(Attachment(url=link, size=await self.document_size(link)))
            page = PageContent(url=url, html=str(node), attachments=attachments)
        except ValidationError as e:
            raise ContentParseError(f"invalid content extracted from {url}: {e}") from e

        self.logger.debug("extracted %s with %d attachments", url, len(attachments))
        return page
