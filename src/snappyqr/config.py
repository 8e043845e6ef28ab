"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
ALLOWED_CONTENT_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif")
DEFAULT_BLOB_API_URL = "https://blob.vercel-storage.com"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Upload service settings.

    ``blob_token`` may be empty: the app still starts, and the direct
    upload path answers 500 until a token is configured.
    """

    blob_token: str = ""
    blob_api_url: str = DEFAULT_BLOB_API_URL
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    allowed_content_types: tuple[str, ...] = ALLOWED_CONTENT_TYPES
    rate_limit: int = 5
    rate_window_seconds: int = 60
    rate_max_keys: int = 10_000
    size_precheck: bool = True
    token_ttl_seconds: int = 3600

    @property
    def rate_limit_enabled(self) -> bool:
        return self.rate_limit > 0

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from environment variables.

        Required for direct uploads:
        - BLOB_READ_WRITE_TOKEN: storage read/write credential

        Optional:
        - BLOB_API_URL (default: https://blob.vercel-storage.com)
        - UPLOAD_MAX_BYTES (default: 10 MiB)
        - UPLOAD_RATE_LIMIT (default: 5, 0 disables)
        - UPLOAD_RATE_WINDOW_SECONDS (default: 60)
        - UPLOAD_RATE_MAX_KEYS (default: 10000)
        - UPLOAD_SIZE_PRECHECK (default: true)
        - UPLOAD_TOKEN_TTL_SECONDS (default: 3600)
        """
        return cls(
            blob_token=os.environ.get("BLOB_READ_WRITE_TOKEN", ""),
            blob_api_url=os.environ.get("BLOB_API_URL", DEFAULT_BLOB_API_URL).rstrip("/"),
            max_upload_bytes=_env_int("UPLOAD_MAX_BYTES", MAX_UPLOAD_BYTES),
            rate_limit=_env_int("UPLOAD_RATE_LIMIT", 5),
            rate_window_seconds=_env_int("UPLOAD_RATE_WINDOW_SECONDS", 60),
            rate_max_keys=_env_int("UPLOAD_RATE_MAX_KEYS", 10_000),
            size_precheck=_env_bool("UPLOAD_SIZE_PRECHECK", True),
            token_ttl_seconds=_env_int("UPLOAD_TOKEN_TTL_SECONDS", 3600),
        )
