"""Download resolved media bytes and assemble the response payload."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from instagram_download_api.config import Settings, settings as default_settings
from instagram_download_api.services.strategies import MediaRef, is_fetchable_url

logger = logging.getLogger(__name__)


class FetchFailureReason(str, Enum):
    UPSTREAM_REJECTED = "upstream_rejected"
    NETWORK_ERROR = "network_error"
    TOO_LARGE = "too_large"
    INVALID_URL = "invalid_url"


class FetchError(RuntimeError):
    """Raised when the resolved media location cannot be retrieved."""

    def __init__(self, reason: FetchFailureReason, message: str, status_code: Optional[int] = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class MediaPayload:
    """Downloaded media, ready to be returned to the caller."""
    content: bytes
    content_type: str
    content_length: int
    filename: str


class MediaFetcher:
    """Fetches the bytes behind a MediaRef with a browser-like identity."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    async def fetch(self, media_ref: MediaRef, client: httpx.AsyncClient) -> MediaPayload:
        """
        Download the media behind ``media_ref``.

        The content type comes from ``media_ref.kind``; the upstream
        Content-Type header is ignored.

        Raises:
            FetchError: On invalid URL, non-2xx status, network failure or oversize body
        """
        if not is_fetchable_url(media_ref.remote_url):
            raise FetchError(
                FetchFailureReason.INVALID_URL,
                f"Refusing to fetch media URL {media_ref.remote_url[:100]!r}",
            )

        max_bytes = self.settings.MAX_MEDIA_BYTES
        headers = {"User-Agent": self.settings.USER_AGENT}
        chunks = []
        received = 0

        try:
            async with client.stream(
                "GET",
                media_ref.remote_url,
                headers=headers,
                follow_redirects=True,
                timeout=self.settings.FETCH_TIMEOUT_SECONDS,
            ) as response:
                if not 200 <= response.status_code < 300:
                    raise FetchError(
                        FetchFailureReason.UPSTREAM_REJECTED,
                        f"Media host returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > max_bytes:
                        raise FetchError(
                            FetchFailureReason.TOO_LARGE,
                            f"Media exceeds size limit ({max_bytes} bytes)",
                        )
                    chunks.append(chunk)
                upstream_type = response.headers.get("content-type", "")
        except httpx.HTTPError as e:
            raise FetchError(
                FetchFailureReason.NETWORK_ERROR,
                f"Media download failed: {type(e).__name__}: {e}",
            ) from e
        except (httpx.InvalidURL, ValueError) as e:
            # e.g. a redirect Location httpx cannot parse
            raise FetchError(
                FetchFailureReason.INVALID_URL,
                f"Media URL could not be requested: {type(e).__name__}: {e}",
            ) from e

        content = b"".join(chunks)
        if upstream_type and not upstream_type.startswith(media_ref.kind.content_type.split("/")[0]):
            logger.warning(
                f"Upstream content type '{upstream_type}' disagrees with resolved kind "
                f"'{media_ref.kind.value}' for {media_ref.suggested_filename}"
            )

        logger.info(f"Fetched {len(content)} bytes for {media_ref.suggested_filename}")
        return MediaPayload(
            content=content,
            content_type=media_ref.kind.content_type,
            content_length=len(content),
            filename=media_ref.suggested_filename,
        )
