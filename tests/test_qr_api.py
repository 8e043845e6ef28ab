"""Tests for the QR rendering endpoints."""

import io

from PIL import Image


class TestRenderPng:
    def test_text_png(self, client):
        response = client.post("/api/qr", json={"kind": "text", "data": {"url": "https://example.com"}})
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == 'attachment; filename="https_example_com.png"'
        assert Image.open(io.BytesIO(response.content)).size == (256, 256)

    def test_fixed_filename_and_style(self, client):
        response = client.post(
            "/api/qr",
            json={
                "kind": "wifi",
                "data": {"ssid": "Home", "password": "pw", "encryption": "WEP"},
                "style": {"size": 128, "include_margin": False},
                "fixed_filename": True,
            },
        )
        assert response.status_code == 200
        assert 'filename="qr-code.png"' in response.headers["content-disposition"]
        assert Image.open(io.BytesIO(response.content)).size == (128, 128)

    def test_svg(self, client):
        response = client.post("/api/qr", json={"kind": "social", "data": {"username": "ada"}, "format": "svg"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert 'id="qr-code"' in response.text


class TestRefusals:
    def test_incomplete_data(self, client):
        response = client.post("/api/qr", json={"kind": "wifi", "data": {"password": "pw"}})
        assert response.status_code == 422
        assert response.json() == {"error": "Incomplete wifi data"}

    def test_media_without_url(self, client):
        response = client.post("/api/qr", json={"kind": "media", "data": {}})
        assert response.status_code == 422

    def test_unknown_field(self, client):
        response = client.post("/api/qr", json={"kind": "text", "data": {"url": "x", "colour": "red"}})
        assert response.status_code == 422
        assert "colour" in response.json()["error"]

    def test_bad_style(self, client):
        response = client.post("/api/qr", json={"kind": "text", "data": {"url": "x"}, "style": {"size": 9999}})
        assert response.status_code == 422
        assert "size" in response.json()["error"]

    def test_payload_too_long(self, client):
        response = client.post("/api/qr", json={"kind": "text", "data": {"url": "x" * 5000}})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to download QR code"}


class TestPayloadText:
    def test_payment_payload(self, client):
        response = client.post(
            "/api/qr/payload",
            json={
                "kind": "payment",
                "data": {"payment_type": "PayPal", "address": "abc", "amount": "10", "message": "hi there"},
            },
        )
        assert response.status_code == 200
        assert response.json() == {"kind": "payment", "payload": "PayPal:abc?amount=10&message=hi%20there"}

    def test_vcard_escape(self, client):
        response = client.post(
            "/api/qr/payload",
            json={"kind": "vcard", "data": {"first_name": "A", "organization": "X, Inc"}, "escape": True},
        )
        assert "ORG:X\\, Inc" in response.json()["payload"]

    def test_incomplete(self, client):
        response = client.post("/api/qr/payload", json={"kind": "calendar", "data": {}})
        assert response.status_code == 422
