"""QR rendering endpoint: form data in, PNG or SVG out."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from snappyqr.domain.payloads import ContentKind, build_record, format_payload, is_valid
from snappyqr.errors import ValidationError
from snappyqr.rendering import (
    DEFAULT_SIZE,
    QRStyle,
    download_filename,
    render_png,
    render_svg,
)

router = APIRouter(prefix="/api", tags=["qr"])


class StyleIn(BaseModel):
    size: int = DEFAULT_SIZE
    fg_color: str = "#1A1A1A"
    bg_color: str = "#FFFFFF"
    include_margin: bool = True


class QRRequest(BaseModel):
    kind: ContentKind
    data: dict[str, Any] = Field(default_factory=dict)
    style: StyleIn = Field(default_factory=StyleIn)
    format: Literal["png", "svg"] = "png"
    escape: bool = False
    fixed_filename: bool = False


@router.post("/qr")
def render_qr(body: QRRequest) -> Response:
    """Render the payload for ``body.kind``.

    Incomplete form data is refused with 422 instead of rendering an
    empty symbol. Rendering failures surface as ``RenderError`` (500).
    """
    record = build_record(body.kind, body.data)
    if not is_valid(body.kind, record):
        return JSONResponse({"error": f"Incomplete {body.kind.value} data"}, status_code=422)

    value = format_payload(body.kind, record, escape=body.escape)
    style = QRStyle(**body.style.model_dump())

    if body.format == "svg":
        return Response(render_svg(value, style), media_type="image/svg+xml")

    filename = download_filename(value, fixed=body.fixed_filename)
    return Response(
        render_png(value, style),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Encoded text only, for clients with their own renderer
@router.post("/qr/payload")
def payload_text(body: QRRequest) -> dict:
    record = build_record(body.kind, body.data)
    if not is_valid(body.kind, record):
        raise ValidationError(f"Incomplete {body.kind.value} data")
    return {"kind": body.kind.value, "payload": format_payload(body.kind, record, escape=body.escape)}
