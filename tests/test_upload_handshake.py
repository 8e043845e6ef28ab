"""Tests for POST /api/upload (signed handshake)."""

import json
from dataclasses import replace
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from snappyqr.api.factory import create_app
from snappyqr.blob.tokens import sign_callback, verify_client_token

# Matches the settings fixture in conftest.py
TEST_BLOB_TOKEN = "vercel_blob_rw_teststore_s3cr3tvalue"


def _token_request(**payload) -> dict:
    body = {"pathname": "cat.png", "contentType": "image/png", "size": 1024}
    body.update(payload)
    return {"type": "blob.generate-client-token", "payload": body}


def _completion(url: str = "https://teststore.public.blob.test/cat-Ab12.png") -> bytes:
    return json.dumps(
        {
            "type": "blob.upload-completed",
            "payload": {"blob": {"url": url, "pathname": "cat-Ab12.png"}, "tokenPayload": None},
        }
    ).encode()


class TestGenerateClientToken:
    def test_issues_token(self, client):
        response = client.post("/api/upload", json=_token_request(clientPayload="qr-form"))
        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "blob.generate-client-token"

        grant = verify_client_token(TEST_BLOB_TOKEN, body["clientToken"])
        assert grant["pathname"] == "cat.png"
        assert grant["allowedContentTypes"] == ["image/jpeg", "image/png", "image/gif"]
        assert grant["maximumSizeInBytes"] == 10 * 1024 * 1024
        assert grant["clientPayload"] == "qr-form"

    def test_pathname_sanitised(self, client):
        response = client.post("/api/upload", json=_token_request(pathname="../secret/cat.png"))
        grant = verify_client_token(TEST_BLOB_TOKEN, response.json()["clientToken"])
        assert grant["pathname"] == "cat.png"

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/gif"])
    def test_allowed_types(self, client, content_type):
        response = client.post("/api/upload", json=_token_request(contentType=content_type))
        assert response.status_code == 200

    def test_disallowed_type(self, client):
        response = client.post("/api/upload", json=_token_request(contentType="video/mp4"))
        assert response.status_code == 400
        assert "Content type not allowed" in response.json()["error"]

    def test_size_over_limit(self, client):
        response = client.post("/api/upload", json=_token_request(size=10 * 1024 * 1024 + 1))
        assert response.status_code == 413
        assert response.json() == {"error": "File too large. Maximum size is 10MB."}

    def test_size_at_limit(self, client):
        response = client.post("/api/upload", json=_token_request(size=10 * 1024 * 1024))
        assert response.status_code == 200

    def test_missing_credential(self, settings):
        client = TestClient(create_app(replace(settings, blob_token="")))
        response = client.post("/api/upload", json=_token_request())
        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}


class TestUploadCompleted:
    def test_signed_callback_acknowledged(self, client):
        body = _completion()
        response = client.post(
            "/api/upload",
            content=body,
            headers={"Content-Type": "application/json", "x-blob-signature": sign_callback(TEST_BLOB_TOKEN, body)},
        )
        assert response.status_code == 200
        assert response.json() == {"type": "blob.upload-completed", "response": "ok"}

    def test_bad_signature(self, client):
        response = client.post(
            "/api/upload",
            content=_completion(),
            headers={"Content-Type": "application/json", "x-blob-signature": "0" * 64},
        )
        assert response.status_code == 403

    def test_unsigned(self, client):
        response = client.post("/api/upload", content=_completion(), headers={"Content-Type": "application/json"})
        assert response.status_code == 403

    def test_callbacks_not_rate_limited(self, client):
        body = _completion()
        headers = {"Content-Type": "application/json", "x-blob-signature": sign_callback(TEST_BLOB_TOKEN, body)}
        statuses = {client.post("/api/upload", content=body, headers=headers).status_code for _ in range(8)}
        assert statuses == {200}


class TestInvalidRequests:
    def test_malformed_json(self, client):
        response = client.post("/api/upload", content=b"{nope", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid upload request"}

    def test_unknown_type(self, client):
        response = client.post("/api/upload", json={"type": "blob.delete", "payload": {}})
        assert response.status_code == 400

    def test_missing_pathname(self, client):
        response = client.post("/api/upload", json={"type": "blob.generate-client-token", "payload": {}})
        assert response.status_code == 400

    def test_non_object_body(self, client):
        response = client.post("/api/upload", json=["blob.generate-client-token"])
        assert response.status_code == 400

    def test_unexpected_failure(self, client):
        with patch("snappyqr.api.routes.upload.generate_client_token", side_effect=RuntimeError("boom")):
            response = client.post("/api/upload", json=_token_request())
        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}


class TestLimits:
    def test_sixth_token_request_refused(self, client):
        statuses = [client.post("/api/upload", json=_token_request()).status_code for _ in range(6)]
        assert statuses == [200] * 5 + [429]

    def test_429_message(self, client):
        for _ in range(5):
            client.post("/api/upload", json=_token_request())
        response = client.post("/api/upload", json=_token_request())
        assert response.json() == {"error": "Too many uploads. Please try again later."}

    def test_declared_length_precheck(self, client):
        response = client.post(
            "/api/upload",
            json=_token_request(),
            headers={"Content-Length": str(20 * 1024 * 1024)},
        )
        assert response.status_code == 413
        assert response.json() == {"error": "File too large. Maximum size is 10MB."}

    def test_signature_header_does_not_exempt_token_requests(self, client):
        headers = {"x-blob-signature": "forged"}
        statuses = [client.post("/api/upload", json=_token_request(), headers=headers).status_code for _ in range(6)]
        assert statuses == [200] * 5 + [429]

    def test_forged_callbacks_count_against_limit(self, client):
        headers = {"Content-Type": "application/json", "x-blob-signature": "0" * 64}
        statuses = [client.post("/api/upload", content=_completion(), headers=headers).status_code for _ in range(6)]
        assert statuses == [403] * 5 + [429]

    def test_signed_callbacks_leave_budget_untouched(self, client):
        body = _completion()
        signed = {"Content-Type": "application/json", "x-blob-signature": sign_callback(TEST_BLOB_TOKEN, body)}
        for _ in range(3):
            client.post("/api/upload", content=body, headers=signed)
        statuses = [client.post("/api/upload", json=_token_request()).status_code for _ in range(6)]
        assert statuses == [200] * 5 + [429]

    def test_malformed_bodies_count_against_limit(self, client):
        headers = {"Content-Type": "application/json"}
        statuses = [client.post("/api/upload", content=b"{nope", headers=headers).status_code for _ in range(6)]
        assert statuses == [400] * 5 + [429]
