"""Base classes for media extraction strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx

from instagram_download_api.config import Settings, settings as default_settings
from instagram_download_api.services.url_validator import PostReference


def is_fetchable_url(url: str) -> bool:
    """True if ``url`` parses as an absolute http(s) URL with a usable host."""
    try:
        parsed = httpx.URL(url)
        # .host decodes IDNA labels and raises on broken ones such as "xn--"
        host = parsed.host
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(host)


class StrategyError(RuntimeError):
    """Raised when an extraction strategy hits a recoverable upstream failure."""


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"

    @property
    def extension(self) -> str:
        return ".mp4" if self is MediaKind.VIDEO else ".jpg"

    @property
    def content_type(self) -> str:
        return "video/mp4" if self is MediaKind.VIDEO else "image/jpeg"


@dataclass(frozen=True)
class MediaRef:
    """Resolved pointer to the remote media bytes."""
    remote_url: str
    kind: MediaKind
    suggested_filename: str

    def __post_init__(self):
        if not self.remote_url:
            raise ValueError("MediaRef.remote_url must not be empty")
        if not is_fetchable_url(self.remote_url):
            raise ValueError(f"MediaRef.remote_url is not an http(s) URL: {self.remote_url[:100]!r}")
        if not self.suggested_filename.endswith(self.kind.extension):
            raise ValueError(
                f"Filename {self.suggested_filename!r} does not match kind {self.kind.value}"
            )

    @classmethod
    def for_post(cls, post_id: str, kind: MediaKind, remote_url: str) -> "MediaRef":
        return cls(
            remote_url=remote_url,
            kind=kind,
            suggested_filename=f"instagram_{kind.value}_{post_id}{kind.extension}",
        )


@dataclass(frozen=True)
class Found:
    media_ref: MediaRef


@dataclass(frozen=True)
class NotFound:
    reason: str = "no media found"


@dataclass(frozen=True)
class TransientError:
    message: str


ExtractionOutcome = Union[Found, NotFound, TransientError]


class ExtractionStrategy(ABC):
    """Abstract base class for one way of resolving a post to its media."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    @staticmethod
    @abstractmethod
    def strategy_name() -> str:
        """Return the identifier used in STRATEGY_ORDER (e.g. 'page_scrape')."""
        ...

    @abstractmethod
    async def extract(self, post: PostReference, client: httpx.AsyncClient) -> ExtractionOutcome:
        """Try to resolve the post's media.

        May raise; the pipeline records any exception as a failed attempt.
        """
        ...

    @property
    def name(self) -> str:
        return self.strategy_name()
