"""
Routes package for the askdata API.

This package contains the FastAPI routers for:
- catalog: Tool catalog and per-phase gate endpoints
- sessions: Transcript replay through the orchestrator
"""

from .catalog import router as catalog_router
from .sessions import router as sessions_router

__all__ = [
    "catalog_router",
    "sessions_router",
]
