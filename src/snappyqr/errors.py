"""Error taxonomy shared by the formatters, the upload client and the API."""

from __future__ import annotations


class SnappyQRError(Exception):
    """Base error. ``message`` is safe to show to the end user."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(SnappyQRError):
    """A required field is missing or malformed."""

    status_code = 422


class SizeLimitError(SnappyQRError):
    """File or declared content length exceeds the upload ceiling."""

    status_code = 413


class RateLimitError(SnappyQRError):
    """Client exceeded the upload rate limit."""

    status_code = 429

    def __init__(self, message: str, *, retry_after: int = 0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UploadTransportError(SnappyQRError):
    """Network failure or non-2xx response while uploading."""

    status_code = 502


class RenderError(SnappyQRError):
    """QR symbol could not be rendered or rasterised."""

    status_code = 500


class ConfigurationError(SnappyQRError):
    """Server-side credential or setting is missing."""

    status_code = 500


class StorageError(SnappyQRError):
    """Blob storage backend rejected or failed the request."""

    status_code = 500
