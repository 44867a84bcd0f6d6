"""
ASGI entry point for the Co-Parent Scheduler API.

Re-exports the FastAPI app from src/api/main.py so hosting platforms and
`uvicorn src.app:app` can find it.
"""

from src.api.main import app

__all__ = ["app"]
