"""
FastAPI server for the askdata orchestrator.

Exposes the tool catalog, the per-phase gate and transcript replay to the
presentation layer.

Usage:
    # Run standalone
    python -m askdata.api.server

    # Or via factory
    from askdata.api import create_app
    app = create_app()
    uvicorn.run(app, port=5001)

API Structure:
    /api/catalog          - Phases and tools (from routes/catalog.py)
    /api/phases/{phase}   - Active tools and directive for one phase
    /api/sessions/replay  - Replay a recorded transcript (from routes/sessions.py)
    /api/health           - Health check
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from askdata.config.runtime_config import get_default_model, get_max_steps
from askdata.config.tool_catalog import get_default_catalog

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    timestamp: str
    tool_count: int
    max_steps: int
    model: str


def create_app(enable_cors: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        enable_cors: Whether to enable CORS middleware.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="askdata API",
        description="Phase-gated orchestration of a tool-calling model for data questions.",
        version="0.1.0",
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    from .routes import catalog_router, sessions_router

    app.include_router(catalog_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check; also confirms the catalog loads."""
        catalog = get_default_catalog()
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
            tool_count=len(catalog),
            max_steps=get_max_steps(),
            model=get_default_model(),
        )

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="askdata API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5001, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-cors", action="store_true", help="Disable CORS")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    app = create_app(enable_cors=not args.no_cors)

    print(f"Starting askdata API server at http://{args.host}:{args.port}")
    print("  GET    /api/health                - Health check")
    print("  GET    /api/catalog               - Phases and tools")
    print("  GET    /api/phases/{phase}        - Active tools and directive")
    print("  POST   /api/sessions/replay       - Replay a recorded transcript")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
