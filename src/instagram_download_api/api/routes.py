"""API routes for Instagram media download."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from instagram_download_api.config import settings
from instagram_download_api.models import DownloadRequest, ErrorResponse
from instagram_download_api.services.download_service import DownloadService
from instagram_download_api.services.media_fetcher import FetchError
from instagram_download_api.services.resolution_pipeline import PipelineExhausted
from instagram_download_api.services.url_validator import InvalidUrlError

logger = logging.getLogger(__name__)

BUILD_TIMESTAMP = datetime.now(timezone.utc).isoformat()

INVALID_URL_MESSAGE = "Invalid Instagram URL"
INVALID_URL_DETAILS = "Use a link to a public post, reel or IGTV video (instagram.com/p/, /reel/ or /tv/)."
EXTRACTION_FAILED_MESSAGE = "Could not extract media from the Instagram post"
FETCH_FAILED_MESSAGE = "Failed to download the media file"
FAILURE_DETAILS = "Check that the URL is correct and the post is public. The post may be private or the format unsupported."

router = APIRouter()


def get_download_service(request: Request) -> DownloadService:
    """FastAPI dependency: the DownloadService built at startup."""
    return request.app.state.download_service


def _error_response(status_code: int, error: str, details: str, with_timestamp: bool) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        details=details,
        timestamp=datetime.now(timezone.utc).isoformat() if with_timestamp else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Version / health
# ---------------------------------------------------------------------------


@router.get("/version")
async def get_version(service: DownloadService = Depends(get_download_service)):
    """Get API version and pipeline configuration."""
    return JSONResponse(
        {
            "service": "instagram-download-api",
            "environment": settings.ENVIRONMENT,
            "build_timestamp": BUILD_TIMESTAMP,
            "strategies": service.pipeline.strategy_names,
        }
    )


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------


@router.post("/download")
async def download(
    payload: DownloadRequest,
    service: DownloadService = Depends(get_download_service),
):
    """Resolve an Instagram post link and return the media file as an attachment."""
    logger.info(f"Processing Instagram URL: {payload.url[:120]}")

    try:
        media = await service.resolve_and_fetch(payload.url, payload.type, payload.resolution)
    except InvalidUrlError as e:
        logger.info(f"Rejected URL: {e}")
        return _error_response(400, INVALID_URL_MESSAGE, INVALID_URL_DETAILS, with_timestamp=False)
    except PipelineExhausted as e:
        logger.warning(f"Download failed: {e}")
        return _error_response(500, EXTRACTION_FAILED_MESSAGE, FAILURE_DETAILS, with_timestamp=True)
    except FetchError as e:
        logger.error(f"Media fetch failed ({e.reason.value}, status={e.status_code}): {e}")
        return _error_response(500, FETCH_FAILED_MESSAGE, FAILURE_DETAILS, with_timestamp=True)

    return Response(
        content=media.content,
        media_type=media.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{media.filename}"',
            "Content-Length": str(media.content_length),
        },
    )
