"""Upload a media file and write a QR code that points at it.

Usage:
    uv run python scripts/upload_media_qr.py <file> [out.png]

Requires:
    - A running SnappyQR API (SNAPPYQR_URL, default http://localhost:8000)
      whose BLOB_READ_WRITE_TOKEN is configured

This script is for local/staging E2E validation only.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: uv run python scripts/upload_media_qr.py <file> [out.png]")
        sys.exit(2)

    path = Path(sys.argv[1])
    if not path.is_file():
        print(f"ERROR: not a file: {path}")
        sys.exit(1)

    from snappyqr.domain.payloads import ContentKind
    from snappyqr.domain.selector import ContentSelector
    from snappyqr.media.upload_client import MediaFile, MediaUploadClient
    from snappyqr.rendering import download_filename, render_png

    base_url = os.environ.get("SNAPPYQR_URL", "http://localhost:8000").rstrip("/")
    client = MediaUploadClient(f"{base_url}/api/blob-upload")

    selector = ContentSelector(ContentKind.MEDIA)
    selector.attach_media(client)

    print(f"Uploading {path.name} ...")
    state = client.submit(MediaFile.from_path(path))
    if state.error:
        print(f"ERROR: {state.error}")
        sys.exit(1)

    value = selector.renderable_value()
    if value is None:
        print("ERROR: upload did not produce a URL")
        sys.exit(1)

    out = Path(sys.argv[2]) if len(sys.argv) > 2 else Path(download_filename(value))
    out.write_bytes(render_png(value))

    print()
    print("=== Media QR Created ===")
    print(f"  url:  {value}")
    print(f"  file: {out}")


if __name__ == "__main__":
    main()
