"""
askdata API - FastAPI REST API over the orchestrator.

Endpoints:
    GET    /api/health              - Health check
    GET    /api/catalog             - Phases and tools
    GET    /api/phases/{phase}      - Active tools and directive for a phase
    POST   /api/sessions/replay     - Replay a recorded transcript

Usage:
    from askdata.api import create_app
    app = create_app()
"""

from .server import create_app

__all__ = ["create_app"]
