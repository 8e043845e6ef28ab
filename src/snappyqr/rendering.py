"""QR symbol rendering and download artifacts.

Symbol encoding is done by ``qrcode``; this module only draws the module
matrix as SVG (for display) or PNG (for download).
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from xml.sax.saxutils import quoteattr

import qrcode
from PIL import Image, ImageColor
from qrcode.exceptions import DataOverflowError

from snappyqr.errors import RenderError, ValidationError
from snappyqr.observability.logging import get_logger
from snappyqr.observability.redaction import safe_log_context

logger = get_logger(__name__)

MIN_SIZE = 128
MAX_SIZE = 512
DEFAULT_SIZE = 256
MARGIN_MODULES = 4

SVG_ELEMENT_ID = "qr-code"
DEFAULT_FILENAME = "qr-code.png"
RENDER_FAILED_MESSAGE = "Failed to download QR code"

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")
_MAX_FILENAME_STEM = 64


@dataclass(frozen=True)
class QRStyle:
    size: int = DEFAULT_SIZE
    fg_color: str = "#1A1A1A"
    bg_color: str = "#FFFFFF"
    include_margin: bool = True

    def __post_init__(self) -> None:
        if not MIN_SIZE <= self.size <= MAX_SIZE:
            raise ValidationError(f"size must be between {MIN_SIZE} and {MAX_SIZE}")
        for name in ("fg_color", "bg_color"):
            if not _HEX_COLOR.match(getattr(self, name)):
                raise ValidationError(f"{name} must be a #RRGGBB colour")


def _matrix(value: str, style: QRStyle) -> list[list[bool]]:
    if not value:
        raise RenderError(RENDER_FAILED_MESSAGE)
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        border=MARGIN_MODULES if style.include_margin else 0,
    )
    qr.add_data(value)
    try:
        qr.make(fit=True)
    except DataOverflowError as e:
        logger.warning(
            "payload too large for a QR symbol",
            extra={"extra_fields": safe_log_context(length=len(value))},
        )
        raise RenderError(RENDER_FAILED_MESSAGE) from e
    return qr.get_matrix()


def render_svg(value: str, style: QRStyle | None = None) -> str:
    """SVG document for ``value``; the root element has ``id="qr-code"``."""
    style = style or QRStyle()
    matrix = _matrix(value, style)
    count = len(matrix)

    path = "".join(
        f"M{x},{y}h1v1h-1z"
        for y, row in enumerate(matrix)
        for x, dark in enumerate(row)
        if dark
    )
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" id={quoteattr(SVG_ELEMENT_ID)} '
        f'width="{style.size}" height="{style.size}" viewBox="0 0 {count} {count}" '
        f'shape-rendering="crispEdges">'
        f'<path fill={quoteattr(style.bg_color)} d="M0,0h{count}v{count}H0z"/>'
        f'<path fill={quoteattr(style.fg_color)} d="{path}"/>'
        f"</svg>"
    )


def render_png(value: str, style: QRStyle | None = None) -> bytes:
    """PNG bytes of exactly ``style.size`` pixels square."""
    style = style or QRStyle()
    matrix = _matrix(value, style)
    count = len(matrix)

    fg = ImageColor.getrgb(style.fg_color)
    bg = ImageColor.getrgb(style.bg_color)
    try:
        img = Image.new("RGB", (count, count), bg)
        img.putdata([fg if dark else bg for row in matrix for dark in row])
        img = img.resize((style.size, style.size), Image.Resampling.NEAREST)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except (OSError, ValueError) as e:
        logger.error("png rasterisation failed", exc_info=True)
        raise RenderError(RENDER_FAILED_MESSAGE) from e
    return buf.getvalue()


def download_filename(value: str, *, fixed: bool = False) -> str:
    """Name for the downloaded PNG.

    ``https://x.io/a?b=1`` becomes ``https_x_io_a_b_1.png``. Falls back to
    ``qr-code.png`` when ``fixed`` or when nothing alphanumeric is left.
    """
    if fixed:
        return DEFAULT_FILENAME
    stem = _NON_ALNUM.sub("_", value).strip("_")[:_MAX_FILENAME_STEM].rstrip("_")
    if not stem:
        return DEFAULT_FILENAME
    return f"{stem}.png"
