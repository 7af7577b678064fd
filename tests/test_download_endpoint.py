"""
End-to-end tests for POST /download.

The real DownloadService runs against a fake upstream, so every strategy,
the media fetcher and the HTTP mapping are exercised together.
"""
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from instagram_download_api.services.download_service import DownloadService
from instagram_download_api.services.oembed_service import OEmbedResponse
from instagram_download_api.services.strategies.rapidapi import RAPIDAPI_URL

POST_URL = "https://www.instagram.com/p/CD4m1UUMGrI/"
PROBE_URL = "https://www.instagram.com/p/CD4m1UUMGrI/media/"
RESOLVER_URL = "https://resolver.example/api/instagram"
PHOTO_URL = "https://scontent.cdninstagram.com/v/t51/photo.jpg"
VIDEO_URL = "https://x/y.mp4"

PHOTO_PAGE = '<script>{"display_url":"https:\\/\\/scontent.cdninstagram.com\\/v\\/t51\\/photo.jpg"}</script>'
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 32


@pytest.fixture
def live_service(upstream, test_settings, use_service):
    """Real DownloadService wired to the fake upstream."""
    return use_service(DownloadService.from_settings(test_settings, transport=upstream.transport))


def _oembed_404():
    return patch(
        "instagram_download_api.services.strategies.oembed.OEmbedService.fetch_instagram_oembed",
        return_value=OEmbedResponse(
            success=False, shortcode="CD4m1UUMGrI", status_code=404, error="HTTP 404"
        ),
    )


# ---------------------------------------------------------------------------
# Success paths
# ---------------------------------------------------------------------------


def test_photo_from_page_scrape(client, upstream, live_service):
    upstream.route(POST_URL, text=PHOTO_PAGE)
    upstream.route(PHOTO_URL, content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"})

    response = client.post("/download", json={"url": POST_URL, "type": "foto"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["content-disposition"] == 'attachment; filename="instagram_photo_CD4m1UUMGrI.jpg"'
    assert response.headers["content-length"] == str(len(JPEG_BYTES))
    assert response.content == JPEG_BYTES
    # First strategy won: nothing else was contacted
    assert upstream.calls_to(PROBE_URL) == []


def test_video_from_resolver_after_earlier_strategies_fail(client, upstream, test_settings, live_service):
    test_settings.RESOLVER_API_URL = RESOLVER_URL
    upstream.fail(POST_URL)
    # PROBE_URL is unrouted and answers 404
    upstream.route(RESOLVER_URL, json={"status": "ok", "data": [{"url": VIDEO_URL, "type": "video"}]})
    upstream.route(VIDEO_URL, content=MP4_BYTES, headers={"Content-Type": "video/mp4"})

    response = client.post(
        "/download",
        json={"url": POST_URL, "type": "video"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "video/mp4"
    assert 'filename="instagram_video_CD4m1UUMGrI.mp4"' in response.headers["content-disposition"]
    assert response.content == MP4_BYTES
    assert len(upstream.calls_to(PROBE_URL)) == 1
    assert len(upstream.calls_to(RESOLVER_URL)) == 1


def test_resolved_kind_wins_over_requested_type(client, upstream, live_service, caplog):
    upstream.route(POST_URL, text=PHOTO_PAGE)
    upstream.route(PHOTO_URL, content=JPEG_BYTES)

    with caplog.at_level(logging.WARNING):
        response = client.post("/download", json={"url": POST_URL, "type": "video", "resolution": "1080p"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert "resolved to photo" in caplog.text


def test_unknown_body_fields_are_ignored(client, upstream, live_service):
    upstream.route(POST_URL, text=PHOTO_PAGE)
    upstream.route(PHOTO_URL, content=JPEG_BYTES)

    response = client.post("/download", json={"url": POST_URL, "quality": "max"})
    assert response.status_code == 200


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/not-instagram",
        "https://www.instagram.com/someuser/",
        "https://www.tiktok.com/@user/video/123",
        "not a url",
        "",
    ],
)
def test_invalid_url_is_400_without_network(client, upstream, live_service, url):
    response = client.post("/download", json={"url": url})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid Instagram URL"
    assert body["details"]
    assert "timestamp" not in body
    assert upstream.calls == []


def test_invalid_url_never_reaches_pipeline(client, use_service, test_settings):
    pipeline = MagicMock()
    pipeline.resolve = AsyncMock()
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock()
    use_service(DownloadService(pipeline, fetcher, settings=test_settings))

    response = client.post("/download", json={"url": "https://www.instagram.com/stories/user/123/"})

    assert response.status_code == 400
    assert pipeline.resolve.await_count == 0
    assert fetcher.fetch.await_count == 0


def test_missing_url_is_422(client, live_service):
    response = client.post("/download", json={"type": "photo"})
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_all_strategies_fail_returns_500(client, upstream, live_service, test_settings, caplog):
    upstream.route(POST_URL, text="<html><title>Login</title></html>")

    with _oembed_404(), caplog.at_level(logging.INFO):
        response = client.post("/download", json={"url": POST_URL})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Could not extract media from the Instagram post"
    assert body["details"]
    assert body["timestamp"]

    attempt_records = [r for r in caplog.records if r.getMessage().startswith("Strategy attempt")]
    assert len(attempt_records) == len(test_settings.STRATEGY_ORDER)
    assert len(attempt_records) >= 4


def test_unusable_resolver_url_moves_pipeline_on(client, upstream, test_settings, live_service):
    test_settings.RESOLVER_API_URL = RESOLVER_URL
    test_settings.RAPIDAPI_KEY = "rapid-key"
    upstream.route(POST_URL, text="<html><title>Login</title></html>")
    upstream.route(RESOLVER_URL, json={"status": "ok", "data": [{"url": "https://xn--/y.mp4", "type": "video"}]})
    upstream.route(RAPIDAPI_URL, json={"video_url": "https://xn--/y.mp4"})
    upstream.route(PHOTO_URL, content=JPEG_BYTES)
    thumbnail = OEmbedResponse(success=True, shortcode="CD4m1UUMGrI", thumbnail_url=PHOTO_URL)

    with patch(
        "instagram_download_api.services.strategies.oembed.OEmbedService.fetch_instagram_oembed",
        return_value=thumbnail,
    ):
        response = client.post("/download", json={"url": POST_URL})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == JPEG_BYTES


def test_unusable_urls_everywhere_give_json_500_with_cors(client, upstream, test_settings, live_service):
    test_settings.RESOLVER_API_URL = RESOLVER_URL
    upstream.route(POST_URL, text="<html><title>Login</title></html>")
    upstream.route(RESOLVER_URL, json={"status": "ok", "data": [{"url": "https://xn--/y.mp4", "type": "video"}]})

    with _oembed_404():
        response = client.post("/download", json={"url": POST_URL})

    assert response.status_code == 500
    assert response.json()["error"] == "Could not extract media from the Instagram post"
    assert response.headers["access-control-allow-origin"] == "*"


def test_media_fetch_failure_returns_500(client, upstream, live_service):
    upstream.route(POST_URL, text=PHOTO_PAGE)
    upstream.route(PHOTO_URL, status_code=403)

    response = client.post("/download", json={"url": POST_URL})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to download the media file"
    assert body["timestamp"]


# ---------------------------------------------------------------------------
# CORS / health / version
# ---------------------------------------------------------------------------


def test_preflight_returns_empty_200_with_cors_headers(client):
    response = client.options("/download")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "content-type" in response.headers["access-control-allow-headers"]


def test_cors_headers_on_error_responses(client, live_service):
    response = client.post("/download", json={"url": "https://example.com/"})
    assert response.status_code == 400
    assert response.headers["access-control-allow-origin"] == "*"


def test_cors_headers_on_media_response(client, upstream, live_service):
    upstream.route(POST_URL, text=PHOTO_PAGE)
    upstream.route(PHOTO_URL, content=JPEG_BYTES)

    response = client.post("/download", json={"url": POST_URL})

    assert response.headers["access-control-allow-origin"] == "*"
    assert "Content-Disposition" in response.headers["access-control-expose-headers"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_version_lists_strategy_order(client, live_service, test_settings):
    response = client.get("/version")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "instagram-download-api"
    assert body["strategies"] == test_settings.STRATEGY_ORDER
    assert "build_timestamp" in body
