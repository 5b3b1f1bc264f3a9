"""Rasa cross-file validation service.

Main FastAPI application with lifespan management, CORS, and global error handling.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rasa_xref.config import get_settings
from rasa_xref.api.router import api_router, ws_router
from rasa_xref.services.event_bus import event_bus
from rasa_xref.services.project_service import RasaProjectService
from rasa_xref.services.validation_service import CrossFileValidationService
from rasa_xref.services.yaml_parser import YamlParserService


def configure_logging() -> None:
    """Configure structured logging once, from settings."""
    settings = get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    settings = get_settings()

    # ── Startup ──
    logger.info("app_starting", debug=settings.DEBUG, workspace_root=settings.WORKSPACE_ROOT)

    app.state.project_service = RasaProjectService(settings.WORKSPACE_ROOT)
    await app.state.project_service.initialize()

    app.state.validation_service = CrossFileValidationService(
        app.state.project_service,
        event_bus=event_bus,
        parser=YamlParserService(settings.MAX_FILE_SIZE),
    )

    # First pass so diagnostics are available before any change signal
    if app.state.project_service.is_rasa_project():
        await app.state.validation_service.validate_project()

    logger.info("app_started", rasa_project=app.state.project_service.is_rasa_project())

    yield

    # ── Shutdown ──
    logger.info("app_shutting_down")

    app.state.validation_service.dispose()
    await app.state.validation_service.drain()

    logger.info("app_stopped")


# ── Create Application ──

app = FastAPI(
    title="Rasa Cross-File Validator",
    description=(
        "Checks that the intents, actions, responses, slots and forms a Rasa "
        "project declares agree with the ones its NLU data, stories and rules use."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


# ── Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ── Global Exception Handlers ──

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unhandled becomes a 500 with a generic body."""
    logger.error("unhandled_exception", path=request.url.path, method=request.method, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Bad input (e.g. a path outside the workspace) becomes a 422."""
    logger.warning("request_rejected", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "message": str(exc)},
    )


# ── Routes ──

app.include_router(api_router, prefix="/api/v1")
app.include_router(ws_router)  # WebSocket at /ws/diagnostics (no versioned prefix)


# ── Root endpoint ──

@app.get("/")
async def root():
    """Root endpoint — API info."""
    return {
        "name": "Rasa Cross-File Validator",
        "version": "0.1.0",
        "description": "Cross-file consistency checks for Rasa projects",
        "docs": "/docs",
        "health": "/api/v1/health",
    }


def serve() -> None:
    """Run the service with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("rasa_xref.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
