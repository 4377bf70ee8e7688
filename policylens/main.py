"""ASGI entrypoint: ``uvicorn policylens.main:app``."""

from policylens.core.app import create_app

app = create_app()

__all__ = ["app"]
