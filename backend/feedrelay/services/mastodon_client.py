"""Mastodon client - the publish sink."""

import logging
from typing import Any

import httpx

from feedrelay.exceptions import PublishError
from feedrelay.models import Item
from feedrelay.schemas.summary import SummaryResult


class MastodonClient:
    """Posts rendered statuses to a Mastodon instance."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        instance_url: str,
        access_token: str,
        post_template: str,
        not_valuable_post_template: str,
        visibility: str = "unlisted",
        logger: logging.Logger | None = None,
    ):
        self.http = http_client
        self.instance_url = instance_url.rstrip("/")
        self.access_token = access_token
        self.post_template = post_template
        self.not_valuable_post_template = not_valuable_post_template
        self.visibility = visibility
        self.logger = logger or logging.getLogger(__name__)

    def render(self, template: str, item: Item, summary: str = "") -> str:
        try:
            return template.format(title=item.title, summary=summary, url=item.identity)
        except (KeyError, IndexError, ValueError) as e:
            raise PublishError(f"failed to render post template: {e}") from e

    async def post_status(self, status: str) -> dict[str, Any]:
        """POST one status; returns the created status as Mastodon reports it."""
        if not self.instance_url or not self.access_token:
            raise PublishError("mastodon instance URL and access token must be configured")

        try:
            response = await self.http.post(
                f"{self.instance_url}/api/v1/statuses",
                headers={"Authorization": f"Bearer {self.access_token}"},
                data={"status": status, "visibility": self.visibility},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error("failed to post to mastodon: %s", e)
            raise PublishError(f"failed to post to mastodon: {e}") from e

        try:
            created = response.json()
        except ValueError:
            created = {}
        if not isinstance(created, dict):
            created = {}
        self.logger.info("posted to mastodon: %s", created.get("url"))
        return created

    async def post_summary(self, item: Item, summary: SummaryResult) -> dict[str, Any]:
        return await self.post_status(self.render(self.post_template, item, summary.final_summary))

    async def post_not_valuable(self, item: Item) -> dict[str, Any]:
        """Announce an item the judgment oracle decided not to summarize."""
        return await self.post_status(self.render(self.not_valuable_post_template, item))
