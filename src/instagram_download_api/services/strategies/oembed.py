"""oEmbed thumbnail strategy. Only ever yields photos."""
from __future__ import annotations

import asyncio
import logging

import httpx

from instagram_download_api.services.oembed_service import OEmbedService
from instagram_download_api.services.url_validator import PostReference
from .base import (
    ExtractionOutcome,
    ExtractionStrategy,
    Found,
    MediaKind,
    MediaRef,
    NotFound,
    TransientError,
)
from . import register_strategy

logger = logging.getLogger(__name__)


class OEmbedStrategy(ExtractionStrategy):

    @staticmethod
    def strategy_name() -> str:
        return "oembed"

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        result = await asyncio.to_thread(
            OEmbedService.fetch_instagram_oembed,
            post.canonical_url,
            post.post_id,
            self.settings.FACEBOOK_APP_TOKEN,
            self.settings.HTTP_TIMEOUT_SECONDS,
        )

        if not result.success:
            if result.status_code == 404:
                return NotFound(result.error or "oEmbed returned HTTP 404")
            return TransientError(result.error or "oEmbed request failed")

        if not result.thumbnail_url:
            return NotFound("oEmbed response has no thumbnail_url")

        logger.info(f"oEmbed thumbnail found for {post.post_id} by {result.author_name}")
        return Found(MediaRef.for_post(post.post_id, MediaKind.PHOTO, result.thumbnail_url))


register_strategy(OEmbedStrategy)
