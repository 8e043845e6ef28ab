"""Signed handshake upload.

The browser asks for a client token scoped to one pathname, uploads
straight to storage with it, and storage then calls back here with the
final blob URL. Two message types share the endpoint:

- ``blob.generate-client-token``: validate the requested content type and
  size, answer ``{"type": ..., "clientToken": ...}``.
- ``blob.upload-completed``: verify the ``x-blob-signature`` header, log
  the URL, answer ``{"type": ..., "response": "ok"}``.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from snappyqr.api.deps import (
    CALLBACK_SIGNATURE_HEADER,
    check_rate_limit,
    enforce_size_precheck,
    get_blob_store,
    get_rate_limiter,
    get_settings,
    size_limit_message,
)
from snappyqr.api.rate_limit import SlidingWindowRateLimiter
from snappyqr.blob.client import BlobStore, safe_pathname
from snappyqr.blob.tokens import generate_client_token, verify_callback_signature
from snappyqr.config import Settings
from snappyqr.errors import ConfigurationError
from snappyqr.observability.correlation import get_correlation_id
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

router = APIRouter(prefix="/api", tags=["upload"])

logger = get_logger(__name__)

GENERATE_CLIENT_TOKEN = "blob.generate-client-token"
UPLOAD_COMPLETED = "blob.upload-completed"

INVALID_REQUEST = "Invalid upload request"
INTERNAL_ERROR = "Internal Server Error"


# ── Schemas ───────────────────────────────────────────────


class TokenRequestPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pathname: str = Field(min_length=1)
    content_type: str | None = Field(default=None, alias="contentType")
    size: int | None = Field(default=None, ge=0)
    client_payload: str | None = Field(default=None, alias="clientPayload")
    multipart: bool = False


class GenerateTokenEvent(BaseModel):
    type: Literal["blob.generate-client-token"]
    payload: TokenRequestPayload


class CompletedBlob(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str = Field(min_length=1)


class CompletionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blob: CompletedBlob
    token_payload: str | None = Field(default=None, alias="tokenPayload")


class UploadCompletedEvent(BaseModel):
    type: Literal["blob.upload-completed"]
    payload: CompletionPayload


# ── Handlers ──────────────────────────────────────────────


def _issue_token(event: GenerateTokenEvent, settings: Settings, store: BlobStore) -> JSONResponse:
    payload = event.payload

    if payload.content_type is not None and payload.content_type not in settings.allowed_content_types:
        logger.info(
            "client token refused: content type",
            extra={"extra_fields": safe_log_context(content_type=payload.content_type)},
        )
        allowed = ", ".join(settings.allowed_content_types)
        return JSONResponse({"error": f"Content type not allowed. Allowed types: {allowed}"}, status_code=400)

    if payload.size is not None and payload.size > settings.max_upload_bytes:
        logger.info(
            "client token refused: size",
            extra={"extra_fields": safe_log_context(size=payload.size)},
        )
        return JSONResponse({"error": size_limit_message(settings.max_upload_bytes)}, status_code=413)

    token = generate_client_token(
        store.token,
        pathname=safe_pathname(payload.pathname),
        allowed_content_types=settings.allowed_content_types,
        maximum_size_in_bytes=settings.max_upload_bytes,
        ttl_seconds=settings.token_ttl_seconds,
        client_payload=payload.client_payload,
    )
    return JSONResponse({"type": GENERATE_CLIENT_TOKEN, "clientToken": token})


def _complete(event: UploadCompletedEvent, raw_body: bytes, signature: str | None, store: BlobStore) -> JSONResponse:
    if not verify_callback_signature(store.token, raw_body, signature):
        logger.warning(
            "upload callback signature mismatch",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        return JSONResponse({"error": "Invalid signature"}, status_code=403)

    logger.info(
        "upload completed",
        extra={"extra_fields": safe_log_context(url=event.payload.blob.url)},
    )
    return JSONResponse({"type": UPLOAD_COMPLETED, "response": "ok"})


def _is_signed_completion(event_type: Any, raw_body: bytes, signature: str | None, store: BlobStore) -> bool:
    if event_type != UPLOAD_COMPLETED or not store.configured:
        return False
    return verify_callback_signature(store.token, raw_body, signature)


@router.post("/upload", dependencies=[Depends(enforce_size_precheck)])
async def upload_handshake(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: BlobStore = Depends(get_blob_store),
    limiter: SlidingWindowRateLimiter | None = Depends(get_rate_limiter),
) -> JSONResponse:
    """Handle one step of the signed upload handshake.

    Every message counts against the caller's upload budget except a
    completion callback whose signature verifies.

    Returns:
        200 with the handshake response.
        400 if the body is not a known handshake message.
        403 if a completion callback is not signed by storage.
        413 if the requested size is over the ceiling.
        429 if the client is over its upload rate limit.
        500 on any other failure.
    """
    raw_body = await request.body()
    try:
        body: Any = json.loads(raw_body)
    except ValueError:
        body = None

    event_type = body.get("type") if isinstance(body, dict) else None
    signature = request.headers.get(CALLBACK_SIGNATURE_HEADER)
    if not _is_signed_completion(event_type, raw_body, signature, store):
        check_rate_limit(request, limiter)

    try:
        try:
            if event_type == GENERATE_CLIENT_TOKEN:
                return _issue_token(GenerateTokenEvent.model_validate(body), settings, store)
            if event_type == UPLOAD_COMPLETED:
                return _complete(UploadCompletedEvent.model_validate(body), raw_body, signature, store)
        except PydanticValidationError:
            return JSONResponse({"error": INVALID_REQUEST}, status_code=400)

        return JSONResponse({"error": INVALID_REQUEST}, status_code=400)

    except ConfigurationError:
        logger.error(
            "BLOB_READ_WRITE_TOKEN not configured - cannot sign uploads",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        return JSONResponse({"error": INTERNAL_ERROR}, status_code=500)
    except Exception:
        logger.exception("upload handshake failed")
        return JSONResponse({"error": INTERNAL_ERROR}, status_code=500)
