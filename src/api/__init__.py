"""
Co-Parent Scheduler API module.

Provides FastAPI HTTP endpoints for availability, events, weekly proposals
and the scheduled triggers.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
