"""ASGI entry point: ``uvicorn snappyqr.api.app:app``."""

from snappyqr.api.factory import create_app

app = create_app()
