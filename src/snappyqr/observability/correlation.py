"""Correlation ID tracking for upload requests."""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

# Visible to every log record emitted while a request is in flight
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Incoming IDs longer than this are replaced rather than echoed back
_MAX_INCOMING_LENGTH = 128


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def resolve_correlation_id(incoming: str | None) -> str:
    """Keep a caller-supplied ID when it is usable, otherwise mint one."""
    if incoming and len(incoming) <= _MAX_INCOMING_LENGTH:
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind ``cid`` for the duration of the block."""
    token = set_correlation_id(cid)
    try:
        yield cid
    finally:
        reset_correlation_id(token)
