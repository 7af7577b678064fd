"""Generic third-party resolver API strategy."""
from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from instagram_download_api.retry import resolver_retry
from instagram_download_api.services.url_validator import PostReference
from .base import (
    ExtractionOutcome,
    ExtractionStrategy,
    Found,
    MediaKind,
    MediaRef,
    NotFound,
    StrategyError,
    is_fetchable_url,
)
from . import register_strategy

logger = logging.getLogger(__name__)


class ResolverMediaItem(BaseModel):
    url: Optional[str] = None
    type: Optional[str] = None


class ResolverResponse(BaseModel):
    """Expected body: {"status": "ok", "data": [{"url": ..., "type": "video"|"image"}]}."""
    status: str
    data: List[ResolverMediaItem] = []


class ResolverApiStrategy(ExtractionStrategy):
    """Submits the post URL to a configured resolver service (RESOLVER_API_URL)."""

    @staticmethod
    def strategy_name() -> str:
        return "resolver_api"

    @resolver_retry
    async def _post(self, client: httpx.AsyncClient, post_url: str) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self.settings.RESOLVER_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.RESOLVER_API_KEY}"
        response = await client.post(
            self.settings.RESOLVER_API_URL,
            json={"url": post_url},
            headers=headers,
        )
        response.raise_for_status()
        return response

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        if not self.settings.RESOLVER_API_URL:
            return NotFound("RESOLVER_API_URL not configured")

        try:
            response = await self._post(client, post.raw_url)
        except httpx.HTTPStatusError as e:
            raise StrategyError(f"Resolver API returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StrategyError(f"Resolver API request failed: {e}") from e

        try:
            body = ResolverResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise StrategyError(f"Malformed resolver API response: {e}") from e

        if body.status.lower() != "ok":
            return NotFound(f"Resolver API status '{body.status}'")

        for item in body.data:
            if not item.url:
                continue
            if not is_fetchable_url(item.url):
                logger.warning(f"Resolver API item for {post.post_id} has unusable url {item.url[:100]!r}")
                continue
            kind = MediaKind.VIDEO if (item.type or "").lower() == "video" else MediaKind.PHOTO
            logger.info(f"Resolver API returned {kind.value} for {post.post_id}")
            return Found(MediaRef.for_post(post.post_id, kind, item.url))

        return NotFound("Resolver API returned no media items")


register_strategy(ResolverApiStrategy)
