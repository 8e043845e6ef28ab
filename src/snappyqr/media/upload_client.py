"""Client side of the media upload flow.

Sends a file to the direct-upload endpoint and tracks its lifecycle:

    idle -> uploading -> done | error

Choosing another file from ``done`` or ``error`` starts over at
``uploading``. Only the most recent submission may update the state: each
``submit`` takes a generation number, and a response that comes back after
a newer submission started is dropped. The network call itself is not
cancelled.
"""

from __future__ import annotations

import base64
import mimetypes
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

import requests

from snappyqr.config import MAX_UPLOAD_BYTES
from snappyqr.domain.payloads import MediaLink
from snappyqr.errors import SizeLimitError, UploadTransportError
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

logger = get_logger(__name__)

HTTP_TIMEOUT = 30

SIZE_LIMIT_MESSAGE = "File size must be less than 10MB"
GENERIC_UPLOAD_ERROR = "Upload failed"


class UploadStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class MediaFile:
    """A file picked by the user, held in memory for the upload."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path) -> MediaFile:
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)


@dataclass(frozen=True)
class MediaUpload:
    """Snapshot of one upload slot."""

    file: MediaFile | None = None
    preview_url: str = ""
    status: UploadStatus = UploadStatus.IDLE
    remote_url: str = ""
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is UploadStatus.DONE and bool(self.remote_url)

    def as_link(self) -> MediaLink:
        """Payload record for the media kind; empty until the upload is done."""
        return MediaLink(url=self.remote_url if self.is_ready else "")


def build_preview_url(file: MediaFile) -> str:
    """Local preview as a ``data:`` URL, available before the upload finishes."""
    encoded = base64.b64encode(file.content).decode("ascii")
    return f"data:{file.content_type};base64,{encoded}"


def _error_message(response: requests.Response) -> str | None:
    try:
        body: Any = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return None


class MediaUploadClient:
    """Uploads media files and exposes the resulting state.

    Usage:
        client = MediaUploadClient("http://localhost:8000/api/blob-upload")
        state = client.submit(MediaFile.from_path("cat.png"))
        if state.is_ready:
            print(state.remote_url)
    """

    def __init__(
        self,
        endpoint: str,
        *,
        session: requests.Session | None = None,
        max_bytes: int = MAX_UPLOAD_BYTES,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._endpoint = endpoint
        self._session = session or requests.Session()
        self._max_bytes = max_bytes
        self._timeout = timeout
        self._lock = threading.Lock()
        self._generation = 0
        self._state = MediaUpload()

    @property
    def state(self) -> MediaUpload:
        with self._lock:
            return self._state

    def reset(self) -> MediaUpload:
        """Forget the current file; any in-flight result will be ignored."""
        with self._lock:
            self._generation += 1
            self._state = MediaUpload()
            return self._state

    def _check_size(self, file: MediaFile) -> None:
        if file.size > self._max_bytes:
            raise SizeLimitError(SIZE_LIMIT_MESSAGE)

    def submit(self, file: MediaFile) -> MediaUpload:
        """Upload ``file`` and return the state it leaves behind.

        Never raises for upload failures: size, transport and server
        errors end up in ``MediaUpload.error``.
        """
        try:
            self._check_size(file)
        except SizeLimitError as e:
            logger.info(
                "upload rejected locally",
                extra={"extra_fields": safe_log_context(size=file.size, limit=self._max_bytes)},
            )
            with self._lock:
                self._state = replace(self._state, error=e.message)
                return self._state

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._state = MediaUpload(
                file=file,
                preview_url=build_preview_url(file),
                status=UploadStatus.UPLOADING,
            )

        try:
            url = self._post(file)
        except UploadTransportError as e:
            logger.warning(
                "media upload failed",
                extra={"extra_fields": safe_log_context(error=e.message, size=file.size)},
            )
            return self._finish(
                generation,
                status=UploadStatus.ERROR,
                preview_url="",
                error=e.message,
            )

        return self._finish(generation, status=UploadStatus.DONE, remote_url=url)

    def _finish(self, generation: int, **changes: Any) -> MediaUpload:
        with self._lock:
            if generation != self._generation:
                logger.info(
                    "discarding stale upload result",
                    extra={"extra_fields": safe_log_context(generation=generation, current=self._generation)},
                )
                return self._state
            self._state = replace(self._state, **changes)
            return self._state

    def _post(self, file: MediaFile) -> str:
        """POST the file as multipart form data and return the public URL."""
        try:
            response = self._session.post(
                self._endpoint,
                files={"file": (file.filename, file.content, file.content_type)},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise UploadTransportError(GENERIC_UPLOAD_ERROR) from e

        if not response.ok:
            raise UploadTransportError(
                _error_message(response) or GENERIC_UPLOAD_ERROR,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UploadTransportError(GENERIC_UPLOAD_ERROR) from e

        url = body.get("url") if isinstance(body, dict) else None
        if not isinstance(url, str) or not url:
            raise UploadTransportError(GENERIC_UPLOAD_ERROR)
        return url
