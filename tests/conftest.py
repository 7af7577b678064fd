"""
Test fixtures for instagram-download-api.

Provides a fake upstream (httpx.MockTransport) for Instagram, resolver APIs
and media CDNs so tests run offline and can count outbound calls.
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import instagram_download_api...`
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from instagram_download_api.api.routes import get_download_service
from instagram_download_api.config import DEFAULT_STRATEGY_ORDER, Settings
from instagram_download_api.main import app
from instagram_download_api.services.url_validator import validate_url


POST_URL = "https://www.instagram.com/p/CD4m1UUMGrI/"
POST_ID = "CD4m1UUMGrI"


# ---------------------------------------------------------------------------
# Fake upstream
# ---------------------------------------------------------------------------


class FakeUpstream:
    """Routes outbound requests by scheme://host/path and records every call."""

    def __init__(self):
        self._routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[httpx.Request] = []

    @staticmethod
    def _key(url: httpx.URL) -> str:
        return f"{url.scheme}://{url.host}{url.path}"

    def route(self, url: str, status_code: int = 200, **response_kwargs) -> None:
        """Serve a fresh httpx.Response(status_code, **response_kwargs) for ``url``."""
        self._routes[self._key(httpx.URL(url))] = (
            lambda request: httpx.Response(status_code, **response_kwargs)
        )

    def route_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._routes[self._key(httpx.URL(url))] = handler

    def fail(self, url: str, message: str = "connection refused") -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(message, request=request)
        self._routes[self._key(httpx.URL(url))] = handler

    def calls_to(self, url: str) -> List[httpx.Request]:
        key = self._key(httpx.URL(url))
        return [r for r in self.calls if self._key(r.url) == key]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self._routes.get(self._key(request.url))
        if handler is None:
            return httpx.Response(404, text="not routed")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


# ---------------------------------------------------------------------------
# Settings / domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment."""
    s = Settings()
    s.STRATEGY_ORDER = DEFAULT_STRATEGY_ORDER.split(",")
    s.STRATEGY_TIMEOUT_SECONDS = 5.0
    s.HTTP_TIMEOUT_SECONDS = 5.0
    s.FETCH_TIMEOUT_SECONDS = 5.0
    s.MAX_MEDIA_BYTES = 10 * 1024 * 1024
    s.RESOLVER_API_URL = None
    s.RESOLVER_API_KEY = None
    s.RAPIDAPI_KEY = None
    s.APIFY_API_TOKEN = None
    s.FACEBOOK_APP_TOKEN = None
    return s


@pytest.fixture
def post_ref():
    return validate_url(POST_URL)


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> TestClient:
    """Per-test FastAPI TestClient; dependency overrides are cleared afterwards."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_service():
    """Install a DownloadService (or stand-in) behind the /download route."""
    def install(service):
        app.dependency_overrides[get_download_service] = lambda: service
        return service
    yield install
    app.dependency_overrides.clear()
