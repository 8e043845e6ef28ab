"""Signed upload grants and callback signatures for blob storage.

A client token lets the browser upload straight to storage without
seeing the read/write credential. It is an HMAC-SHA256 signature over a
base64url JSON payload that pins the pathname, allowed content types,
size ceiling and expiry. The storage backend checks it on upload and
signs its completion callback with the same credential.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any

from snappyqr.errors import ConfigurationError, ValidationError

CLIENT_TOKEN_PREFIX = "vercel_blob_client_"
_RW_TOKEN_PREFIX = "vercel_blob_rw_"


def _require_secret(read_write_token: str) -> bytes:
    if not read_write_token:
        raise ConfigurationError("Blob storage is not configured")
    return read_write_token.encode()


def store_id_from_token(read_write_token: str) -> str:
    """Extract the store ID from ``vercel_blob_rw_<storeId>_<secret>``."""
    if read_write_token.startswith(_RW_TOKEN_PREFIX):
        parts = read_write_token[len(_RW_TOKEN_PREFIX):].split("_", 1)
        if parts and parts[0]:
            return parts[0]
    return "default"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64decode(value: str) -> bytes:
    # Re-add padding stripped on encode
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _sign(secret: bytes, message: bytes) -> str:
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def generate_client_token(
    read_write_token: str,
    *,
    pathname: str,
    allowed_content_types: list[str] | tuple[str, ...],
    maximum_size_in_bytes: int,
    valid_until: int | None = None,
    ttl_seconds: int = 3600,
    client_payload: str | None = None,
) -> str:
    """Issue a scoped upload grant.

    Args:
        read_write_token: Storage credential used as the HMAC key.
        pathname: Object path the grant is limited to.
        allowed_content_types: MIME types the upload may declare.
        maximum_size_in_bytes: Size ceiling enforced by storage.
        valid_until: Expiry as epoch milliseconds. Defaults to now + ttl.
        ttl_seconds: Lifetime used when ``valid_until`` is not given.
        client_payload: Opaque string echoed back on completion.

    Raises:
        ConfigurationError: If the read/write token is missing.
    """
    secret = _require_secret(read_write_token)
    if valid_until is None:
        valid_until = int((time.time() + ttl_seconds) * 1000)

    payload = {
        "pathname": pathname,
        "allowedContentTypes": list(allowed_content_types),
        "maximumSizeInBytes": maximum_size_in_bytes,
        "validUntil": valid_until,
        "addRandomSuffix": True,
    }
    if client_payload is not None:
        payload["clientPayload"] = client_payload

    encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
    signature = _sign(secret, encoded.encode())
    grant = _b64encode(f"{signature}.{encoded}".encode())
    return f"{CLIENT_TOKEN_PREFIX}{store_id_from_token(read_write_token)}_{grant}"


def verify_client_token(read_write_token: str, client_token: str, *, now_ms: int | None = None) -> dict[str, Any]:
    """Check a client token's signature and expiry, returning its payload.

    This is the storage backend's side of the grant: the backend runs it
    when the browser uploads with a token from ``generate_client_token``.
    The API only issues tokens, so nothing in ``snappyqr.api`` calls it.
    A self-hosted or test storage backend can use it to accept uploads.

    Raises:
        ConfigurationError: If the read/write token is missing.
        ValidationError: If the token is malformed, forged or expired.
    """
    secret = _require_secret(read_write_token)
    prefix = f"{CLIENT_TOKEN_PREFIX}{store_id_from_token(read_write_token)}_"
    if not client_token.startswith(prefix):
        raise ValidationError("Invalid client token")

    try:
        signature, encoded = _b64decode(client_token[len(prefix):]).decode().split(".", 1)
        payload = json.loads(_b64decode(encoded))
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Invalid client token")

    if not hmac.compare_digest(signature, _sign(secret, encoded.encode())):
        raise ValidationError("Invalid client token")

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if int(payload.get("validUntil", 0)) <= now_ms:
        raise ValidationError("Client token expired")
    return payload


def sign_callback(read_write_token: str, body: bytes) -> str:
    """Signature storage attaches to its upload-completed callback."""
    return _sign(_require_secret(read_write_token), body)


def verify_callback_signature(read_write_token: str, body: bytes, signature: str | None) -> bool:
    """Constant-time check of a completion callback signature."""
    if not signature:
        return False
    return hmac.compare_digest(signature, sign_callback(read_write_token, body))
