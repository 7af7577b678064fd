"""Orchestrates validation, media resolution and download for one request."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from instagram_download_api.config import Settings, settings as default_settings
from instagram_download_api.services.media_fetcher import MediaFetcher, MediaPayload
from instagram_download_api.services.resolution_pipeline import ResolutionPipeline
from instagram_download_api.services.strategies import ExtractionStrategy, build_strategies
from instagram_download_api.services.url_validator import RequestedKind, validate_url

logger = logging.getLogger(__name__)


class DownloadService:
    """Entry point used by the HTTP layer: URL in, media bytes out."""

    def __init__(
        self,
        pipeline: ResolutionPipeline,
        fetcher: MediaFetcher,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.pipeline = pipeline
        self.fetcher = fetcher
        self.settings = settings or default_settings
        # Injected in tests to fake upstream hosts.
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "DownloadService":
        """Build the service with strategies in STRATEGY_ORDER (unless given explicitly)."""
        settings = settings or default_settings
        if strategies is None:
            strategies = build_strategies(settings.STRATEGY_ORDER, settings)
        pipeline = ResolutionPipeline(strategies, strategy_timeout=settings.STRATEGY_TIMEOUT_SECONDS)
        logger.info(f"Resolution pipeline order: {', '.join(pipeline.strategy_names)}")
        return cls(pipeline, MediaFetcher(settings), settings=settings, transport=transport)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            headers={"User-Agent": self.settings.USER_AGENT},
            transport=self._transport,
        )

    async def resolve_and_fetch(
        self,
        url: str,
        requested_type: Optional[str] = None,
        resolution: Optional[str] = None,
    ) -> MediaPayload:
        """
        Validate ``url``, resolve its media and download it.

        ``requested_type`` and ``resolution`` are hints: the resolved kind
        always wins and resolution is not applied.

        Raises:
            InvalidUrlError: Before any network call, if the URL is not a post URL
            PipelineExhausted: If no strategy found media
            FetchError: If the resolved media could not be downloaded
        """
        post = validate_url(url, requested_type, resolution)
        logger.info(
            f"Processing Instagram post {post.post_id} "
            f"(type={post.requested_kind.value}, resolution={post.requested_resolution})"
        )

        async with self._client() as client:
            media_ref = await self.pipeline.resolve(post, client)

            if (
                post.requested_kind is not RequestedKind.UNKNOWN
                and post.requested_kind.value != media_ref.kind.value
            ):
                logger.warning(
                    f"Requested {post.requested_kind.value} but post {post.post_id} "
                    f"resolved to {media_ref.kind.value}; downloading {media_ref.kind.value}"
                )

            return await self.fetcher.fetch(media_ref, client)
