"""
FastAPI application factory for the frame tracker replay API.

Routes:
- /api/* -> REST API (status, timeline lookups, replay)
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Frame Tracker",
        version="0.1.0",
        description="Replay API for frame-indexed detection and tracking results",
    )

    # CORS for development (local viewer dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    return app
