"""Redaction helpers for safe logging.

Upload requests carry contact details (vCard payloads, file names typed
by users) and storage credentials. Anything external goes through
``safe_log_context`` before it reaches a log line.
"""

import re
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
# Blob read/write tokens and signed client tokens
_TOKEN_PATTERN = re.compile(r"vercel_blob_(?:rw|client)_[A-Za-z0-9_\-.=]+")
_BEARER_PATTERN = re.compile(r"Bearer\s+\S+", re.IGNORECASE)

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII and credential patterns from a string."""
    result = _TOKEN_PATTERN.sub(_REDACTED, value)
    result = _BEARER_PATTERN.sub(f"Bearer {_REDACTED}", result)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, bytes):
        return f"bytes(len={len(value)})"
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
