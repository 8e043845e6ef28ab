"""Tests for environment-driven settings."""

import pytest

from snappyqr.config import MAX_UPLOAD_BYTES, Settings


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "BLOB_READ_WRITE_TOKEN",
            "BLOB_API_URL",
            "UPLOAD_MAX_BYTES",
            "UPLOAD_RATE_LIMIT",
            "UPLOAD_SIZE_PRECHECK",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.blob_token == ""
        assert settings.blob_api_url == "https://blob.vercel-storage.com"
        assert settings.max_upload_bytes == MAX_UPLOAD_BYTES == 10 * 1024 * 1024
        assert settings.rate_limit == 5
        assert settings.rate_window_seconds == 60
        assert settings.size_precheck is True
        assert settings.allowed_content_types == ("image/jpeg", "image/png", "image/gif")

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("BLOB_API_URL", "http://localhost:9000/")
        monkeypatch.setenv("UPLOAD_RATE_LIMIT", "0")
        monkeypatch.setenv("UPLOAD_SIZE_PRECHECK", "false")
        settings = Settings.from_env()
        assert settings.blob_api_url == "http://localhost:9000"
        assert settings.rate_limit_enabled is False
        assert settings.size_precheck is False

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_MAX_BYTES", "ten")
        with pytest.raises(RuntimeError, match="UPLOAD_MAX_BYTES"):
            Settings.from_env()
