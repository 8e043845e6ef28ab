"""Request dependencies backed by state built once in ``create_app``."""

from __future__ import annotations

from fastapi import Depends, Request

from snappyqr.api.rate_limit import SlidingWindowRateLimiter, client_key
from snappyqr.blob.client import BlobStore
from snappyqr.config import Settings
from snappyqr.errors import RateLimitError, SizeLimitError
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Too many uploads. Please try again later."

# Multipart framing around the file part (boundaries, part headers)
MULTIPART_OVERHEAD_BYTES = 64 * 1024

# Storage callbacks are signed and verified by the handler itself
CALLBACK_SIGNATURE_HEADER = "x-blob-signature"


def size_limit_message(max_bytes: int) -> str:
    return f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter | None:
    return request.app.state.rate_limiter


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def check_rate_limit(request: Request, limiter: SlidingWindowRateLimiter | None) -> None:
    """Count one upload against the caller's budget.

    Raises:
        RateLimitError: Client exceeded its upload budget for the window.
    """
    if limiter is None:
        return
    key = client_key(request)
    decision = limiter.hit(key)
    if not decision.allowed:
        logger.warning(
            "upload rate limit exceeded",
            extra={"extra_fields": safe_log_context(client=key, retry_after=decision.retry_after)},
        )
        raise RateLimitError(RATE_LIMITED_MESSAGE, retry_after=decision.retry_after)


def enforce_size_precheck(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Refuse a declared Content-Length over the ceiling before the body is read.

    Raises:
        SizeLimitError: Declared Content-Length is over the ceiling.
    """
    if not settings.size_precheck:
        return
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES:
        logger.warning(
            "declared content length over limit",
            extra={"extra_fields": safe_log_context(content_length=int(declared))},
        )
        raise SizeLimitError(size_limit_message(settings.max_upload_bytes))


def enforce_upload_limits(
    request: Request,
    settings: Settings = Depends(get_settings),
    limiter: SlidingWindowRateLimiter | None = Depends(get_rate_limiter),
) -> None:
    """Apply the rate limit and the size pre-check, in that order."""
    check_rate_limit(request, limiter)
    enforce_size_precheck(request, settings)
