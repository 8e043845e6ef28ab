"""FastAPI application factory.

Process-wide state (settings, rate limiter, storage client) is built
here once and hung off ``app.state``; handlers reach it through the
dependencies in ``snappyqr.api.deps``.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from snappyqr.api.rate_limit import SlidingWindowRateLimiter
from snappyqr.blob.client import BlobStore
from snappyqr.config import Settings
from snappyqr.errors import ConfigurationError, RateLimitError, SnappyQRError
from snappyqr.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_scope,
    resolve_correlation_id,
)
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

from .routers import public
from .routes import blob_upload, qr, upload

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-XSS-Protection": "1; mode=block",
    "Content-Security-Policy": (
        "default-src 'self'; img-src 'self' blob: data: https://*.vercel-storage.com; "
        "script-src 'self' 'unsafe-eval' 'unsafe-inline'; style-src 'self' 'unsafe-inline';"
    ),
}


async def _domain_error_handler(request: Request, exc: SnappyQRError) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error(
            "configuration error",
            extra={"extra_fields": safe_log_context(path=request.url.path, error=exc.message)},
        )
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled error",
        exc_info=exc,
        extra={"extra_fields": safe_log_context(path=request.url.path)},
    )
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the upload and QR API.

    Args:
        settings: Explicit settings. If None, read from the environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings.from_env()

    app = FastAPI(
        title="SnappyQR",
        docs_url=None,
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.blob_store = BlobStore(settings.blob_token, base_url=settings.blob_api_url)
    app.state.rate_limiter = (
        SlidingWindowRateLimiter(
            settings.rate_limit,
            settings.rate_window_seconds,
            max_keys=settings.rate_max_keys,
        )
        if settings.rate_limit_enabled
        else None
    )

    if not settings.blob_token:
        logger.warning("BLOB_READ_WRITE_TOKEN not set - uploads will fail with 500")

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        with correlation_scope(cid):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
            return response

    app.add_exception_handler(SnappyQRError, _domain_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(public.router)
    app.include_router(blob_upload.router)
    app.include_router(upload.router)
    app.include_router(qr.router)

    return app
