"""
Hafez Quraan Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn hafez_api.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌──────────────┐ ┌──────────────┐ ┌──────────────┐  │
    │  │   Req ID     │→│   Logging    │→│    CORS      │  │
    │  └──────────────┘ └──────────────┘ └──────────────┘  │
    │                                                      │
    │  Routes:                                             │
    │  ┌───────────┐ ┌───────────────┐ ┌────────────────┐  │
    │  │ /send-otp │ │ /save|/load   │ │ /log-activity  │  │
    │  └───────────┘ └───────────────┘ │ /analytics     │  │
    │                                  └────────────────┘  │
    │  Exception Handlers:                                 │
    │  ┌────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Upstream→500 │ Storage→500    │  │
    │  └────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Validate configuration (missing DATABASE_URL aborts startup)
    2. Apply pending migrations (unless RUN_MIGRATIONS_ON_STARTUP=false)
    3. Build engine, session factory and mail dispatcher on app.state

    Shutdown:
    1. Close the mail dispatcher's HTTP client
    2. Dispose the database engine (close all pooled connections)
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hafez_api import __version__
from hafez_api.config import Settings, settings as default_settings
from hafez_api.database import build_engine, build_session_factory
from hafez_api.exceptions import (
    HafezError,
    StorageError,
    UpstreamServiceError,
    ValidationError,
)
from hafez_api.middleware.logging import RequestLoggingMiddleware
from hafez_api.middleware.request_id import RequestIDMiddleware, request_id_var
from hafez_api.migrations import run_migrations
from hafez_api.routes import activity, health, otp, progress
from hafez_api.services.mail_service import SendGridDispatcher

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(app_settings: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build every shared resource on startup and release it on shutdown.

    Handlers never reach for module globals: the session factory and mail
    dispatcher are read from `app.state` through FastAPI dependencies, so
    tests can build an app against any database and swap the dispatcher.
    """
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings)
    logger.info("=" * 60)
    logger.info("Hafez Quraan API starting up...")

    try:
        app_settings.validate_required()
    except ValueError as e:
        logger.critical("Configuration error: %s", str(e))
        raise

    if app_settings.run_migrations_on_startup:
        # alembic/env.py runs its own event loop, so it cannot share this one
        await asyncio.to_thread(run_migrations, app_settings.database_url)

    engine = build_engine(app_settings)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.mail_dispatcher = SendGridDispatcher(app_settings)

    logger.info("Server ready at http://%s:%d", app_settings.host, app_settings.port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Hafez Quraan API shutting down...")
    await app.state.mail_dispatcher.close()
    await engine.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the failure envelope.

    Handler hierarchy:
        ValidationError         → 400 Bad Request (client can fix the input)
        RequestValidationError  → 400 Bad Request (body did not parse)
        UpstreamServiceError    → 500 (mail provider)
        StorageError            → 500 (storage message passed through)
        HafezError (base)       → 500
        Exception (fallback)    → 500, generic message, stack trace logged

    Every response body is `{"success": false, "error": <message>}`.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return _error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Pydantic rejected the body shape; report the first problem as a 400."""
        rid = request_id_var.get("")
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        else:
            message = "Invalid request"
        logger.warning("[%s] Request validation error: %s", rid, message)
        return _error_response(400, message)

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        rid = request_id_var.get("")
        if exc.authorization_failed:
            logger.critical("[%s] Mail provider rejected credentials: %s", rid, exc.message)
        else:
            logger.error("[%s] Mail provider error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Storage error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(HafezError)
    async def handle_app_error(request: Request, exc: HafezError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error_response(500, "An unexpected error occurred")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to run with. Defaults to the environment-backed
                      instance; tests pass their own (SQLite URL, no migrations).
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Hafez Quraan API",
        description=(
            "Progress sync, activity logging and analytics for the Hafez Quraan "
            "memorization app, plus verification-code email delivery."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_origin_regex=app_settings.cors_origin_regex or None,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(otp.router)
    app.include_router(progress.router)
    app.include_router(activity.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `hafez_api.main:app` to be importable
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)
