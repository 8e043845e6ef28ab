"""Shared pytest fixtures for SnappyQR tests."""
import sys
sys.dont_write_bytecode = True

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from snappyqr.api.factory import create_app  # noqa: E402
from snappyqr.config import Settings  # noqa: E402

TEST_BLOB_TOKEN = "vercel_blob_rw_teststore_s3cr3tvalue"


@pytest.fixture
def settings() -> Settings:
    return Settings(blob_token=TEST_BLOB_TOKEN, blob_api_url="https://blob.test")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def mock_put(app):
    """Replace the storage call on the app's BlobStore."""
    put = MagicMock(
        return_value={
            "url": "https://teststore.public.blob.test/cat-Ab12Cd.png",
            "downloadUrl": "https://teststore.public.blob.test/cat-Ab12Cd.png?download=1",
            "pathname": "cat-Ab12Cd.png",
            "contentType": "image/png",
            "contentDisposition": 'inline; filename="cat.png"',
        }
    )
    app.state.blob_store.put = put
    return put
