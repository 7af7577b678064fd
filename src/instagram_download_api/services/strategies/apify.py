"""Apify Instagram scraper strategy."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from instagram_download_api.config import Settings
from instagram_download_api.services.apify_service import ApifyService, ApifyServiceError
from instagram_download_api.services.url_validator import PostReference
from .base import (
    ExtractionOutcome,
    ExtractionStrategy,
    Found,
    MediaKind,
    MediaRef,
    NotFound,
    StrategyError,
)
from . import register_strategy

logger = logging.getLogger(__name__)

# Seconds left between the actor run timeout and the pipeline's own bound,
# so the run is aborted remotely before the strategy is abandoned.
ACTOR_TIMEOUT_MARGIN_SECONDS = 3
# Typical scraper runs take longer than this; shorter bounds mostly time out.
RECOMMENDED_STRATEGY_TIMEOUT_SECONDS = 60


def actor_timeout_secs(strategy_timeout: float) -> int:
    return max(1, int(strategy_timeout) - ACTOR_TIMEOUT_MARGIN_SECONDS)


def _first_post_item(token: str, post_url: str, timeout_secs: int) -> Dict[str, Any]:
    return ApifyService(token).first_post_item(post_url, timeout_secs)


class ApifyStrategy(ExtractionStrategy):
    """Resolves media through the Apify instagram-scraper actor (needs APIFY_API_TOKEN)."""

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        if (
            self.settings.APIFY_API_TOKEN
            and self.settings.STRATEGY_TIMEOUT_SECONDS < RECOMMENDED_STRATEGY_TIMEOUT_SECONDS
        ):
            logger.warning(
                f"Apify is enabled with STRATEGY_TIMEOUT_SECONDS={self.settings.STRATEGY_TIMEOUT_SECONDS:g}; "
                f"actor runs usually need {RECOMMENDED_STRATEGY_TIMEOUT_SECONDS}s or more"
            )

    @staticmethod
    def strategy_name() -> str:
        return "apify"

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        token = self.settings.APIFY_API_TOKEN
        if not token:
            return NotFound("APIFY_API_TOKEN not configured")

        # apify-client blocks; the actor timeout ends the run before the pipeline gives up on it.
        try:
            item = await asyncio.to_thread(
                _first_post_item,
                token,
                post.canonical_url,
                actor_timeout_secs(self.settings.STRATEGY_TIMEOUT_SECONDS),
            )
        except ApifyServiceError as e:
            raise StrategyError(str(e)) from e

        video_url = item.get("videoUrl")
        if isinstance(video_url, str) and video_url:
            return Found(MediaRef.for_post(post.post_id, MediaKind.VIDEO, video_url))

        display_url = item.get("displayUrl")
        if isinstance(display_url, str) and display_url:
            return Found(MediaRef.for_post(post.post_id, MediaKind.PHOTO, display_url))

        logger.info(f"Apify item for {post.post_id} has no videoUrl/displayUrl (type={item.get('type')})")
        return NotFound("Apify result has no videoUrl or displayUrl")


register_strategy(ApifyStrategy)
