"""
EvolvingHome REST API.

FastAPI adapter over the boundary operations.

Usage:
    uvicorn evolvinghome.api.main:app --reload

    # Or directly
    python -m evolvinghome.api.main
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
