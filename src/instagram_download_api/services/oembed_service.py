"""
oEmbed service for fetching Instagram post metadata.

Tries the Facebook Graph API oEmbed endpoint first, then the legacy public
Instagram endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from instagram_download_api.config import settings

logger = logging.getLogger(__name__)


@dataclass
class OEmbedResponse:
    """Standardized oEmbed response."""
    success: bool
    shortcode: str

    title: Optional[str] = None
    author_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_width: Optional[int] = None
    thumbnail_height: Optional[int] = None

    # Error info
    status_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


class OEmbedService:
    """Service for fetching oEmbed metadata for Instagram posts."""

    INSTAGRAM_OEMBED_URL = "https://graph.facebook.com/v18.0/instagram_oembed"
    LEGACY_OEMBED_URL = "https://api.instagram.com/oembed/"

    # Timeout for HTTP requests
    REQUEST_TIMEOUT = 10

    @classmethod
    def fetch_instagram_oembed(
        cls,
        post_url: str,
        shortcode: str,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OEmbedResponse:
        """
        Fetch oEmbed data for an Instagram post.

        Args:
            post_url: Canonical Instagram post URL
            shortcode: Post ID, echoed back in the response
            access_token: Facebook app token; defaults to FACEBOOK_APP_TOKEN
            timeout: Per-request timeout in seconds

        Returns:
            OEmbedResponse with metadata or error
        """
        access_token = access_token or settings.FACEBOOK_APP_TOKEN
        timeout = timeout or cls.REQUEST_TIMEOUT
        headers = {
            "User-Agent": settings.USER_AGENT,
            "Accept": "application/json",
        }

        try:
            params = {
                "url": post_url,
                "omitscript": "true",
                "maxwidth": "658",
            }
            if access_token:
                params["access_token"] = access_token

            response = requests.get(
                cls.INSTAGRAM_OEMBED_URL,
                params=params,
                headers=headers,
                timeout=timeout,
            )
            if response.status_code == 200:
                return cls._parse_instagram_oembed(response.json(), shortcode)

            # Try alternative: legacy Instagram oEmbed (no auth needed, less reliable)
            alt_response = requests.get(
                f"{cls.LEGACY_OEMBED_URL}?url={quote(post_url, safe='')}",
                headers=headers,
                timeout=timeout,
            )
            if alt_response.status_code == 200:
                return cls._parse_instagram_oembed(alt_response.json(), shortcode)

            # Both failed
            return OEmbedResponse(
                success=False,
                shortcode=shortcode,
                status_code=alt_response.status_code,
                error=(
                    f"Instagram oEmbed failed: HTTP {response.status_code} "
                    f"(legacy endpoint HTTP {alt_response.status_code})"
                ),
            )

        except requests.Timeout:
            return OEmbedResponse(
                success=False,
                shortcode=shortcode,
                error="Instagram oEmbed request timed out",
            )
        except requests.RequestException as e:
            return OEmbedResponse(
                success=False,
                shortcode=shortcode,
                error=f"Instagram oEmbed request failed: {str(e)}",
            )
        except ValueError as e:
            return OEmbedResponse(
                success=False,
                shortcode=shortcode,
                error=f"Instagram oEmbed returned invalid JSON: {str(e)}",
            )

    @classmethod
    def _parse_instagram_oembed(cls, data: Any, shortcode: str) -> OEmbedResponse:
        """Parse Instagram oEmbed response into standardized format."""
        if not isinstance(data, dict):
            return OEmbedResponse(
                success=False,
                shortcode=shortcode,
                error=f"Unexpected oEmbed payload type: {type(data).__name__}",
            )

        thumbnail_url = data.get("thumbnail_url")
        return OEmbedResponse(
            success=True,
            shortcode=shortcode,
            title=data.get("title"),
            author_name=data.get("author_name"),
            thumbnail_url=thumbnail_url if isinstance(thumbnail_url, str) else None,
            thumbnail_width=data.get("thumbnail_width"),
            thumbnail_height=data.get("thumbnail_height"),
        )
