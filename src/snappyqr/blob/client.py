"""Thin wrapper around the blob storage HTTP API.

Purpose:
- Keep storage calls out of the route handlers.
- Fail before any network call when the credential is missing.
- Never log the credential or file contents (only sizes and pathnames).
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any

import requests

from snappyqr.config import DEFAULT_BLOB_API_URL
from snappyqr.errors import ConfigurationError, StorageError
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

logger = get_logger(__name__)

HTTP_TIMEOUT = 30
API_VERSION = "7"

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_pathname(filename: str) -> str:
    """Reduce a user-supplied filename to a flat, URL-safe object name."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    name = _UNSAFE_PATH_CHARS.sub("-", name).strip("-.")
    return name or "upload"


class BlobStore:
    """Client for public object uploads.

    Usage:
        store = BlobStore(token=os.environ["BLOB_READ_WRITE_TOKEN"])
        blob = store.put("photo.png", data, content_type="image/png")
        print(blob["url"])
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BLOB_API_URL,
        session: requests.Session | None = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._token)

    @property
    def token(self) -> str:
        return self._token

    def put(self, filename: str, content: bytes, *, content_type: str | None = None) -> dict[str, Any]:
        """Store ``content`` as a public object with a random name suffix.

        Returns:
            The backend's blob record: ``url``, ``downloadUrl``,
            ``pathname``, ``contentType``, ``contentDisposition``.

        Raises:
            ConfigurationError: If no read/write token is configured.
            StorageError: On transport failure or a non-2xx response.
        """
        if not self._token:
            raise ConfigurationError("Blob storage is not configured")

        pathname = safe_pathname(filename)
        headers = {
            "Authorization": f"Bearer {self._token}",
            "x-api-version": API_VERSION,
            "x-add-random-suffix": "1",
            "x-access": "public",
        }
        if content_type:
            headers["x-content-type"] = content_type

        try:
            resp = self._session.put(
                f"{self._base_url}/{pathname}",
                data=content,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "blob storage unreachable",
                extra={"extra_fields": safe_log_context(pathname=pathname, error=str(e))},
            )
            raise StorageError("Upload failed") from e

        if not resp.ok:
            logger.error(
                "blob storage rejected upload",
                extra={"extra_fields": safe_log_context(pathname=pathname, status=resp.status_code)},
            )
            raise StorageError("Upload failed")

        try:
            blob = resp.json()
        except ValueError as e:
            raise StorageError("Upload failed") from e
        if not isinstance(blob, dict) or not blob.get("url"):
            raise StorageError("Upload failed")

        logger.info(
            "blob stored",
            extra={"extra_fields": safe_log_context(pathname=blob.get("pathname", pathname), size=len(content))},
        )
        return blob
