"""Configuration settings for the Instagram download API."""
import logging
import os
from typing import List, Literal


logger = logging.getLogger(__name__)

EnvironmentType = Literal["development", "staging", "production"]

DEFAULT_STRATEGY_ORDER = "page_scrape,cdn_probe,resolver_api,rapidapi,apify,oembed"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}={raw!r}, using default {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using default {default}")
        return default
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}={raw!r}, using default {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using default {default}")
        return default
    return value


class Settings:
    """Application settings."""

    # Environment
    ENVIRONMENT: EnvironmentType = "development"
    LOG_LEVEL: str = "INFO"

    # Resolution pipeline
    STRATEGY_ORDER: List[str]
    STRATEGY_TIMEOUT_SECONDS: float = 15.0
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Media fetcher
    FETCH_TIMEOUT_SECONDS: float = 60.0
    MAX_MEDIA_BYTES: int = 200 * 1024 * 1024
    USER_AGENT: str = DEFAULT_USER_AGENT

    # Third-party resolvers
    RESOLVER_API_URL: str | None = None
    RESOLVER_API_KEY: str | None = None
    RAPIDAPI_KEY: str | None = None
    APIFY_API_TOKEN: str | None = None
    FACEBOOK_APP_TOKEN: str | None = None

    # HTTP surface
    CORS_ALLOW_HEADERS: str = DEFAULT_CORS_ALLOW_HEADERS

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Resolution pipeline
        order = os.getenv("STRATEGY_ORDER") or DEFAULT_STRATEGY_ORDER
        self.STRATEGY_ORDER = [name.strip() for name in order.split(",") if name.strip()]
        self.STRATEGY_TIMEOUT_SECONDS = _float_env("STRATEGY_TIMEOUT_SECONDS", 15.0)
        self.HTTP_TIMEOUT_SECONDS = _float_env("HTTP_TIMEOUT_SECONDS", 10.0)

        # Media fetcher
        self.FETCH_TIMEOUT_SECONDS = _float_env("FETCH_TIMEOUT_SECONDS", 60.0)
        self.MAX_MEDIA_BYTES = _int_env("MAX_MEDIA_BYTES", 200 * 1024 * 1024)
        self.USER_AGENT = os.getenv("USER_AGENT") or DEFAULT_USER_AGENT

        # API Keys
        self.RESOLVER_API_URL = os.getenv("RESOLVER_API_URL") or None
        self.RESOLVER_API_KEY = os.getenv("RESOLVER_API_KEY") or None
        self.RAPIDAPI_KEY = os.getenv("RAPIDAPI_KEY") or None
        self.APIFY_API_TOKEN = os.getenv("APIFY_API_TOKEN") or None
        self.FACEBOOK_APP_TOKEN = os.getenv("FACEBOOK_APP_TOKEN") or None

        self.CORS_ALLOW_HEADERS = os.getenv("CORS_ALLOW_HEADERS") or DEFAULT_CORS_ALLOW_HEADERS


settings = Settings()
