"""First-party page scrape: read media URLs embedded in the post's HTML."""
from __future__ import annotations

import html
import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

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
    is_fetchable_url,
)
from . import register_strategy

logger = logging.getLogger(__name__)

# JSON string body, allowing escaped quotes: "video_url":"https:\/\/..."
_JSON_STRING = r'"((?:[^"\\]|\\.)*)"'
VIDEO_URL_RE = re.compile(r'"video_url"\s*:\s*' + _JSON_STRING)
DISPLAY_URL_RE = re.compile(r'"display_url"\s*:\s*' + _JSON_STRING)
ESCAPED_VIDEO_URL_RE = re.compile(r'&quot;video_url&quot;\s*:\s*&quot;(.*?)&quot;')
ESCAPED_DISPLAY_URL_RE = re.compile(r'&quot;display_url&quot;\s*:\s*&quot;(.*?)&quot;')

SHARED_DATA_RE = re.compile(r"window\._sharedData\s*=\s*(\{.*?\})\s*;\s*</script>", re.DOTALL)
ADDITIONAL_DATA_RE = re.compile(
    r"window\.__additionalDataLoaded\(\s*['\"][^'\"]*['\"]\s*,\s*(\{.*?\})\s*\)\s*;", re.DOTALL
)


def _meta_content_re(prop: str) -> Tuple[re.Pattern, re.Pattern]:
    """Patterns for <meta property=... content=...> in either attribute order."""
    prop_re = re.escape(prop) + r"(?::secure_url|:url)?"
    return (
        re.compile(
            r'<meta[^>]+(?:property|name)=["\']' + prop_re + r'["\'][^>]*content=["\']([^"\']+)["\']',
            re.IGNORECASE,
        ),
        re.compile(
            r'<meta[^>]+content=["\']([^"\']+)["\'][^>]*(?:property|name)=["\']' + prop_re + r'["\']',
            re.IGNORECASE,
        ),
    )


OG_VIDEO_RES = _meta_content_re("og:video")
OG_IMAGE_RES = _meta_content_re("og:image")


def _decode_json_string(raw: str) -> str:
    """Decode a JSON string body (handles \\u0026 and \\/ escapes)."""
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw.replace("\\u0026", "&").replace("\\", "")


def _from_json_string(pattern: re.Pattern) -> Callable[[str], Optional[str]]:
    def extractor(page: str) -> Optional[str]:
        match = pattern.search(page)
        return _decode_json_string(match.group(1)) if match else None
    return extractor


def _from_escaped_json(pattern: re.Pattern) -> Callable[[str], Optional[str]]:
    def extractor(page: str) -> Optional[str]:
        match = pattern.search(page)
        if not match:
            return None
        return _decode_json_string(html.unescape(match.group(1)))
    return extractor


def _from_meta(patterns: Tuple[re.Pattern, re.Pattern]) -> Callable[[str], Optional[str]]:
    def extractor(page: str) -> Optional[str]:
        for pattern in patterns:
            match = pattern.search(page)
            if match:
                return html.unescape(match.group(1))
        return None
    return extractor


def _find_shortcode_media(node: Any) -> Optional[dict]:
    """Depth-first search for the first 'shortcode_media' record."""
    if isinstance(node, dict):
        record = node.get("shortcode_media")
        if isinstance(record, dict):
            return record
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        found = _find_shortcode_media(child)
        if found is not None:
            return found
    return None


def _page_state_media(page: str) -> Optional[Tuple[str, MediaKind]]:
    for pattern in (SHARED_DATA_RE, ADDITIONAL_DATA_RE):
        for match in pattern.finditer(page):
            try:
                state = json.loads(match.group(1))
            except ValueError:
                continue
            media = _find_shortcode_media(state)
            if not media:
                continue
            for key, kind in (("video_url", MediaKind.VIDEO), ("display_url", MediaKind.PHOTO)):
                value = media.get(key)
                if isinstance(value, str) and is_fetchable_url(value):
                    return value, kind
    return None


# Evaluated in order against one HTML payload; first match wins. Video rules
# come before photo rules because video posts also carry a display_url.
EXTRACTION_RULES: List[Tuple[str, Callable[[str], Optional[str]], MediaKind]] = [
    ("video_url", _from_json_string(VIDEO_URL_RE), MediaKind.VIDEO),
    ("escaped_video_url", _from_escaped_json(ESCAPED_VIDEO_URL_RE), MediaKind.VIDEO),
    ("og:video", _from_meta(OG_VIDEO_RES), MediaKind.VIDEO),
    ("display_url", _from_json_string(DISPLAY_URL_RE), MediaKind.PHOTO),
    ("escaped_display_url", _from_escaped_json(ESCAPED_DISPLAY_URL_RE), MediaKind.PHOTO),
    ("og:image", _from_meta(OG_IMAGE_RES), MediaKind.PHOTO),
]


def extract_media_from_html(page: str) -> Optional[Tuple[str, MediaKind, str]]:
    """
    Find the post's media URL in an Instagram page.

    Returns:
        (url, kind, rule_name) for the first matching rule, or None
    """
    state_media = _page_state_media(page)
    if state_media:
        url, kind = state_media
        return url, kind, "shortcode_media"

    for rule_name, extractor, kind in EXTRACTION_RULES:
        url = extractor(page)
        if url and is_fetchable_url(url):
            return url, kind, rule_name
    return None


class PageScrapeStrategy(ExtractionStrategy):
    """Fetches the public post page and scrapes embedded media URLs."""

    @staticmethod
    def strategy_name() -> str:
        return "page_scrape"

    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        headers = {
            "User-Agent": self.settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        try:
            response = await client.get(post.raw_url, headers=headers, follow_redirects=True)
        except httpx.HTTPError as e:
            raise StrategyError(f"Page request failed: {e}") from e

        if response.status_code != 200:
            raise StrategyError(f"Page request returned HTTP {response.status_code}")

        page = response.text
        logger.debug(f"Instagram page for {post.post_id}: length={len(page)}")

        result = extract_media_from_html(page)
        if not result:
            return NotFound("no media URL in page HTML")

        url, kind, rule_name = result
        logger.info(f"Page scrape matched rule '{rule_name}' for {post.post_id} ({kind.value})")
        return Found(MediaRef.for_post(post.post_id, kind, url))


register_strategy(PageScrapeStrategy)
