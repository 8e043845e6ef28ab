"""Direct media upload: multipart file in, public blob URL out.

Response contract:
- 200: blob record from storage (``url``, ``downloadUrl``, ``pathname``, ...)
- 400: ``{"error": "No file received"}``
- 413: file or declared body over the size ceiling
- 429: client over its upload rate limit
- 500: storage credential missing, or the storage call failed
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from snappyqr.api.deps import (
    enforce_upload_limits,
    get_blob_store,
    get_settings,
    size_limit_message,
)
from snappyqr.blob.client import BlobStore
from snappyqr.config import Settings
from snappyqr.errors import ConfigurationError, StorageError
from snappyqr.observability.correlation import get_correlation_id
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

router = APIRouter(prefix="/api", tags=["upload"])

logger = get_logger(__name__)


@router.post("/blob-upload", dependencies=[Depends(enforce_upload_limits)])
async def blob_upload(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: BlobStore = Depends(get_blob_store),
) -> JSONResponse:
    """Store the ``file`` form field as a public blob.

    The body is parsed here rather than declared as a parameter so that
    rate and size limits run before any of it is consumed.
    """
    correlation_id = get_correlation_id()

    try:
        form = await request.form()
    except Exception:
        logger.warning(
            "unreadable multipart body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse({"error": "No file received"}, status_code=400)

    file = form.get("file")
    if not isinstance(file, UploadFile):
        return JSONResponse({"error": "No file received"}, status_code=400)

    try:
        # One byte past the ceiling is enough to tell it was exceeded
        content = await file.read(settings.max_upload_bytes + 1)
    finally:
        await file.close()

    if len(content) > settings.max_upload_bytes:
        logger.warning(
            "uploaded file over limit",
            extra={"extra_fields": safe_log_context(size=len(content), limit=settings.max_upload_bytes)},
        )
        return JSONResponse({"error": size_limit_message(settings.max_upload_bytes)}, status_code=413)

    try:
        blob = await run_in_threadpool(
            store.put, file.filename or "upload", content, content_type=file.content_type
        )
    except ConfigurationError as e:
        logger.error(
            "BLOB_READ_WRITE_TOKEN not configured - rejecting upload",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse({"error": e.message}, status_code=500)
    except StorageError as e:
        return JSONResponse({"error": e.message}, status_code=500)

    logger.info(
        "media uploaded",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                size=len(content),
                content_type=file.content_type,
            )
        },
    )
    return JSONResponse(blob)
