"""
VoxTask API - FastAPI Application

HTTP and WebSocket surface for the voice todo assistant. This module is the
composition root: it owns the task store, its CollectionRef and the command
orchestrator, and hands them to the routes through ``app.state``.

Usage:
    uvicorn voxtask.api.main:app --host 127.0.0.1 --port 8080 --reload

    Or run directly:
    python -m voxtask.api.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voxtask import __version__
from voxtask.api.models import ErrorResponse, HealthCheck
from voxtask.api.routes import api_router
from voxtask.api.websocket import ws_router
from voxtask.errors import InputError
from voxtask.logging_config import setup_logging
from voxtask.tasks.stores import TaskStore, get_store
from voxtask.voice import load_voice_config
from voxtask.voice.orchestrator import CommandOrchestrator
from voxtask.voice.session import SessionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting VoxTask API...")
    app.state.startup_time = datetime.now()

    if app.state.store is None:
        app.state.store = get_store()
    if app.state.orchestrator is None:
        app.state.orchestrator = CommandOrchestrator(app.state.store)
    if app.state.sessions is None:
        app.state.sessions = SessionManager()
    logger.info(f"Task store: {app.state.store.name} ({app.state.store.collection!r})")

    yield

    logger.info("Shutting down VoxTask API...")
    await app.state.store.close()


def create_app(
    store: TaskStore | None = None,
    orchestrator: CommandOrchestrator | None = None,
    sessions: SessionManager | None = None,
    config: dict[str, Any] | None = None,
) -> FastAPI:
    """Build the application. Anything not injected is created at startup."""
    if config is None:
        config = load_voice_config().get("api", {})

    app = FastAPI(
        title="VoxTask API",
        description="Voice-driven todo assistant",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.store = store if store is not None else (orchestrator.store if orchestrator else None)
    app.state.orchestrator = orchestrator
    app.state.sessions = sessions

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("allowed_origins", ["http://localhost:3000", "http://127.0.0.1:3000"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError):
        """Nothing usable in the request."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error=exc.user_message, code="INPUT_ERROR").model_dump(),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail), code=f"HTTP_{exc.status_code}").model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Internal server error").model_dump(),
        )

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================

    @app.get("/api/health", response_model=HealthCheck, tags=["health"])
    async def health_check(request: Request):
        """Report which providers and which task store are configured."""
        services: dict[str, str] = {}
        orchestrator: CommandOrchestrator | None = request.app.state.orchestrator

        store = request.app.state.store
        services["store"] = store.name if store is not None else "unavailable"

        if orchestrator is not None:
            transcribers = orchestrator.transcriber.available_providers
            services["transcription"] = ",".join(transcribers) or "unavailable"
            synthesizers = orchestrator.synthesizer.available_providers
            services["synthesis"] = ",".join(synthesizers) or "unavailable"
            services["llm_fallback"] = (
                "available" if orchestrator.classifier.fallback.is_available else "unavailable"
            )

        overall = "healthy" if store is not None else "degraded"
        return HealthCheck(status=overall, version=__version__, services=services)

    # =========================================================================
    # Include Routers
    # =========================================================================

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


def _build_default_app() -> FastAPI:
    # Load .env before any provider reads its API key
    load_dotenv()
    setup_logging()
    return create_app()


app = _build_default_app()


def run() -> None:
    """Serve the API with uvicorn using the host and port from args/voice.yaml."""
    import uvicorn

    api_config = load_voice_config().get("api", {})
    uvicorn.run(
        "voxtask.api.main:app",
        host=api_config.get("host", "127.0.0.1"),
        port=api_config.get("port", 8080),
        log_level="info",
    )


if __name__ == "__main__":
    run()
