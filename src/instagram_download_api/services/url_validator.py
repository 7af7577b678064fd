"""Validate Instagram post links and turn them into post references."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class InvalidUrlError(ValueError):
    """Raised when a link is not a supported Instagram post URL."""


class RequestedKind(str, Enum):
    """Media kind the caller asked for. A hint only."""
    PHOTO = "photo"
    VIDEO = "video"
    UNKNOWN = "unknown"


_ACCEPTED_URL_RE = re.compile(
    r"^https?://(www\.)?(instagram\.com|instagr\.am)/(p|reel|tv)/[A-Za-z0-9_-]+"
)

# Each entry: (compiled_pattern, post_type). Checked in order; the first
# capture group is the post ID.
_POST_ID_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"/p/([A-Za-z0-9_-]+)"), "p"),
    (re.compile(r"/reel/([A-Za-z0-9_-]+)"), "reel"),
    (re.compile(r"/tv/([A-Za-z0-9_-]+)"), "tv"),
]

_KIND_HINTS = {
    "photo": RequestedKind.PHOTO,
    "foto": RequestedKind.PHOTO,
    "image": RequestedKind.PHOTO,
    "video": RequestedKind.VIDEO,
    "reel": RequestedKind.VIDEO,
    "reels": RequestedKind.VIDEO,
    "tv": RequestedKind.VIDEO,
    "igtv": RequestedKind.VIDEO,
}


@dataclass(frozen=True)
class PostReference:
    """Validated, canonical form of a user-supplied Instagram link."""
    raw_url: str
    post_id: str
    post_type: str
    requested_kind: RequestedKind = RequestedKind.UNKNOWN
    # Accepted from the caller but never applied to extraction.
    requested_resolution: Optional[str] = None

    @property
    def canonical_url(self) -> str:
        return f"https://www.instagram.com/{self.post_type}/{self.post_id}/"


def parse_requested_kind(value: Optional[str]) -> RequestedKind:
    """Map a caller's free-form type hint ("foto", "reels", ...) to a RequestedKind."""
    if not value:
        return RequestedKind.UNKNOWN
    return _KIND_HINTS.get(value.strip().lower(), RequestedKind.UNKNOWN)


def validate_url(
    raw_url: str,
    requested_type: Optional[str] = None,
    resolution: Optional[str] = None,
) -> PostReference:
    """
    Validate an Instagram post link and extract its post ID.

    Accepted shapes are ``/p/<id>``, ``/reel/<id>`` and ``/tv/<id>`` on
    instagram.com or instagr.am. No network access happens here.

    Args:
        raw_url: Link as submitted by the caller
        requested_type: Optional media type hint ("photo", "video", ...)
        resolution: Optional resolution hint, carried through unchanged

    Returns:
        PostReference for the post

    Raises:
        InvalidUrlError: If the link is not a supported post URL
    """
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise InvalidUrlError("URL is empty")

    url = raw_url.strip()
    if not _ACCEPTED_URL_RE.match(url):
        raise InvalidUrlError(f"Not an Instagram post URL: {url[:100]}")

    for pattern, post_type in _POST_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return PostReference(
                raw_url=url,
                post_id=match.group(1),
                post_type=post_type,
                requested_kind=parse_requested_kind(requested_type),
                requested_resolution=resolution or None,
            )

    # Unreachable while _ACCEPTED_URL_RE and _POST_ID_PATTERNS agree.
    raise InvalidUrlError(f"Could not extract post ID from URL: {url[:100]}")
