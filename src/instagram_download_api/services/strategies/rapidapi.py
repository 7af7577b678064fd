"""RapidAPI 'instagram-media-downloader' resolver strategy."""
from __future__ import annotations

import logging
from typing import Optional

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
)
from . import register_strategy

logger = logging.getLogger(__name__)

RAPIDAPI_HOST = "instagram-media-downloader.p.rapidapi.com"
RAPIDAPI_URL = f"https://{RAPIDAPI_HOST}/rapid-instagram.php"


class RapidApiResponse(BaseModel):
    video_url: Optional[str] = None
    image_url: Optional[str] = None


class RapidApiStrategy(ExtractionStrategy):
    """Posts the URL as a form field and reads video_url / image_url back."""

    @staticmethod
    def strategy_name() -> str:
        return "rapidapi"

    @resolver_retry
    async def _post(self, client: httpx.AsyncClient, post_url: str) -> httpx.Response:
        headers = {
            "X-RapidAPI-Key": self.settings.RAPIDAPI_KEY or "",
            "X-RapidAPI-Host": RAPIDAPI_HOST,
        }
        response = await client.post(RAPIDAPI_URL, data={"url": post_url}, headers=headers)
        response.raise_for_status()
        return response

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        if not self.settings.RAPIDAPI_KEY:
            return NotFound("RAPIDAPI_KEY not configured")

        try:
            response = await self._post(client, post.raw_url)
        except httpx.HTTPStatusError as e:
            raise StrategyError(f"RapidAPI returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StrategyError(f"RapidAPI request failed: {e}") from e

        try:
            payload = response.json()
            body = RapidApiResponse.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise StrategyError(f"Malformed RapidAPI response: {e}") from e

        if body.video_url:
            return Found(MediaRef.for_post(post.post_id, MediaKind.VIDEO, body.video_url))
        if body.image_url:
            return Found(MediaRef.for_post(post.post_id, MediaKind.PHOTO, body.image_url))

        logger.info(f"RapidAPI had no media for {post.post_id}: keys={list(payload)[:10]}")
        return NotFound("RapidAPI response has no video_url or image_url")


register_strategy(RapidApiStrategy)
