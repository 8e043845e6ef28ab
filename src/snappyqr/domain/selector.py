"""Active content kind and per-kind form state."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Callable

from snappyqr.domain.payloads import (
    DATA_TYPES,
    ContentData,
    ContentKind,
    MediaLink,
    build_record,
    format_payload,
    is_valid,
)
from snappyqr.media.upload_client import MediaUpload, MediaUploadClient


class ContentSelector:
    """Holds one form record per kind; exactly one kind is active.

    Switching kinds keeps what was typed for the others. The media kind
    has no record of its own once an upload source is attached: its link
    is read from the upload state each time, so it stays empty until the
    upload reports ``done``.
    """

    def __init__(self, kind: ContentKind = ContentKind.TEXT, *, escape: bool = False) -> None:
        self._kind = ContentKind(kind)
        self._escape = escape
        self._records: dict[ContentKind, ContentData] = {k: t() for k, t in DATA_TYPES.items()}
        self._media_source: Callable[[], MediaLink] | None = None

    @property
    def kind(self) -> ContentKind:
        return self._kind

    def select(self, kind: ContentKind) -> None:
        self._kind = ContentKind(kind)

    def attach_media(self, source: MediaUploadClient | MediaUpload) -> None:
        """Read the media link from a live upload client or a fixed snapshot."""
        if isinstance(source, MediaUploadClient):
            self._media_source = lambda: source.state.as_link()
        else:
            self._media_source = source.as_link

    def record(self, kind: ContentKind | None = None) -> ContentData:
        kind = self._kind if kind is None else ContentKind(kind)
        if kind is ContentKind.MEDIA and self._media_source is not None:
            return self._media_source()
        return self._records[kind]

    def update(self, kind: ContentKind, **fields: Any) -> ContentData:
        """Replace fields on the record for ``kind`` and return it.

        Raises:
            ValidationError: On a field name or value the record does not accept.
        """
        kind = ContentKind(kind)
        updated = build_record(kind, {**asdict(self._records[kind]), **fields})
        self._records[kind] = updated
        return updated

    def value(self) -> str:
        return format_payload(self._kind, self.record(), escape=self._escape)

    def is_valid(self) -> bool:
        return is_valid(self._kind, self.record())

    def renderable_value(self) -> str | None:
        """Payload for the renderer, or None while the active form is incomplete."""
        if not self.is_valid():
            return None
        value = self.value()
        return value or None
