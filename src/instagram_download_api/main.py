"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import Response

from instagram_download_api.api.routes import router
from instagram_download_api.config import settings
from instagram_download_api.services.download_service import DownloadService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Instagram Download API")

# Built once at process start; routes read it through a dependency.
app.state.download_service = DownloadService.from_settings(settings)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": settings.CORS_ALLOW_HEADERS,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Expose-Headers": "Content-Disposition, Content-Length",
}


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Attach CORS headers to every response; answer pre-flight OPTIONS with an empty body."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


app.include_router(router)
