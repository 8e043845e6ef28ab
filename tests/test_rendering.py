"""Tests for QR rendering and download naming."""

import io

import pytest
from PIL import Image

from snappyqr.errors import RenderError, ValidationError
from snappyqr.rendering import QRStyle, download_filename, render_png, render_svg


class TestStyle:
    def test_defaults(self):
        style = QRStyle()
        assert style.size == 256
        assert style.include_margin is True

    @pytest.mark.parametrize("size", [127, 513])
    def test_size_out_of_range(self, size):
        with pytest.raises(ValidationError):
            QRStyle(size=size)

    def test_bad_colour(self):
        with pytest.raises(ValidationError):
            QRStyle(fg_color="red")


class TestRenderPng:
    def test_exact_size(self):
        img = Image.open(io.BytesIO(render_png("https://example.com", QRStyle(size=200))))
        assert img.format == "PNG"
        assert img.size == (200, 200)

    def test_colours_applied(self):
        style = QRStyle(fg_color="#FF0000", bg_color="#00FF00")
        img = Image.open(io.BytesIO(render_png("hello", style))).convert("RGB")
        colours = {c for _, c in img.getcolors()}
        assert colours == {(255, 0, 0), (0, 255, 0)}

    def test_margin_is_background(self):
        img = Image.open(io.BytesIO(render_png("hello", QRStyle(include_margin=True)))).convert("RGB")
        assert img.getpixel((0, 0)) == (255, 255, 255)

    def test_no_margin_starts_with_finder(self):
        img = Image.open(io.BytesIO(render_png("hello", QRStyle(include_margin=False)))).convert("RGB")
        assert img.getpixel((0, 0)) == (0x1A, 0x1A, 0x1A)

    def test_empty_value_refused(self):
        with pytest.raises(RenderError, match="Failed to download QR code"):
            render_png("")

    def test_overflow_is_render_error(self):
        with pytest.raises(RenderError):
            render_png("x" * 5000)


class TestRenderSvg:
    def test_element_id(self):
        svg = render_svg("hello")
        assert svg.startswith("<svg")
        assert 'id="qr-code"' in svg
        assert 'width="256"' in svg

    def test_parses_as_xml(self):
        from xml.etree import ElementTree

        root = ElementTree.fromstring(render_svg("WIFI:T:WPA;S:a&b;P:<x>;H:false;;"))
        assert root.get("id") == "qr-code"


class TestDownloadFilename:
    def test_derived_from_content(self):
        assert download_filename("https://x.io/a?b=1") == "https_x_io_a_b_1.png"

    def test_fixed(self):
        assert download_filename("https://x.io", fixed=True) == "qr-code.png"

    def test_no_alphanumerics(self):
        assert download_filename(";;;") == "qr-code.png"

    def test_truncated(self):
        name = download_filename("a" * 500)
        assert name == "a" * 64 + ".png"
