"""Direct CDN probe via Instagram's /media/ shortcut path."""
from __future__ import annotations

import logging

import httpx

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

MEDIA_PATH_TEMPLATE = "https://www.instagram.com/p/{post_id}/media/?size=l"


class CdnProbeStrategy(ExtractionStrategy):
    """Requests the conventional direct-media path and keeps the redirect target."""

    @staticmethod
    def strategy_name() -> str:
        return "cdn_probe"

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        probe_url = MEDIA_PATH_TEMPLATE.format(post_id=post.post_id)
        headers = {"User-Agent": self.settings.USER_AGENT}

        try:
            # Streamed so the media body itself is never downloaded here.
            async with client.stream(
                "GET", probe_url, headers=headers, follow_redirects=True
            ) as response:
                status = response.status_code
                content_type = response.headers.get("content-type", "").lower()
                final_url = str(response.url)
        except httpx.HTTPError as e:
            raise StrategyError(f"CDN probe failed: {e}") from e

        if not 200 <= status < 300:
            if status == 404:
                return NotFound("CDN probe returned HTTP 404")
            raise StrategyError(f"CDN probe returned HTTP {status}")

        if content_type.startswith("video/"):
            kind = MediaKind.VIDEO
        elif content_type.startswith("image/"):
            kind = MediaKind.PHOTO
        else:
            return NotFound(f"CDN probe returned non-media content type '{content_type or 'none'}'")

        logger.info(f"CDN probe resolved {post.post_id} to {final_url[:80]} ({content_type})")
        return Found(MediaRef.for_post(post.post_id, kind, final_url))


register_strategy(CdnProbeStrategy)
