"""
FormBridge Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance that
       owns its settings, its FirestoreConnector and its SubmissionService
       (all on app.state).
Who:   Called by uvicorn (uvicorn formbridge.main:app) or by run().

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  CORS → Request ID → Logging → Body Limit → GZip         │
    │                                                          │
    │  Routes:                                                 │
    │  POST /submit-form │ GET /form-submissions │ GET /health │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ TooLarge→413 │ Init→500 │ Store→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Attempt Firestore initialization; abort startup on failure when
       FIREBASE_REQUIRED_AT_STARTUP is set (uvicorn then exits nonzero)
    Shutdown:
    1. Delete the firebase_admin App
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from formbridge import __version__
from formbridge.config import Settings, settings as default_settings
from formbridge.database import FirestoreConnector
from formbridge.exceptions import (
    FormBridgeError,
    InitializationError,
    PayloadTooLargeError,
    StoreError,
    ValidationError,
)
from formbridge.middleware.body_limit import BodySizeLimitMiddleware
from formbridge.middleware.logging import RequestLoggingMiddleware
from formbridge.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from formbridge.routes import health, submissions
from formbridge.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party libraries that log every call at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, then one Firestore initialization attempt.
    Shutdown: release the Firebase app.

    Raising from the startup half makes uvicorn abort with a nonzero exit code.
    """
    app_settings: Settings = app.state.settings
    connector: FirestoreConnector = app.state.connector

    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("FormBridge Backend %s starting up...", __version__)

    if not await connector.ensure_ready():
        if app_settings.firebase_required_at_startup:
            logger.error("Failed to start server: %s", connector.last_error)
            raise InitializationError(
                f"Failed to start server: {connector.last_error}",
            )
        logger.warning(
            "Starting without Firestore; initialization will be retried per request"
        )

    logger.info("Server running at http://%s:%d", app_settings.host, app_settings.port)
    logger.info("=" * 60)

    yield

    logger.info("FormBridge Backend shutting down...")
    connector.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, message: str) -> JSONResponse:
    """Error envelope, tagged with the request ID so callers can quote it."""
    rid = request_id_var.get("")
    headers = {REQUEST_ID_HEADER: rid} if rid else None
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to the `{success: false, error}` envelope.

    Handler hierarchy:
        ValidationError        → 400
        PayloadTooLargeError   → 413
        InitializationError    → 500
        StoreError             → 500 (store message passed through)
        FormBridgeError (base) → 500
        Exception (fallback)   → 500 (generic message, trace logged)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error (%s): %s", exc.kind, exc.message)
        return _error_response(400, exc.message)

    @app.exception_handler(PayloadTooLargeError)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError):
        logger.warning("%s", exc.message)
        return _error_response(413, exc.message)

    @app.exception_handler(InitializationError)
    async def handle_initialization_error(request: Request, exc: InitializationError):
        logger.error("%s | Context: %s", exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error("Store error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(FormBridgeError)
    async def handle_app_error(request: Request, exc: FormBridgeError):
        logger.error("Application error: %s", exc.message)
        return _error_response(500, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error_response(500, "An unexpected error occurred")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Configuration to use; defaults to the module-level
                      settings loaded from the environment.

    Returns:
        A configured FastAPI instance. Nothing touches Firebase until the
        lifespan starts or the first data request arrives.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="FormBridge API",
        description="Stores form submissions in Firestore and serves them back paginated.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.connector = FirestoreConnector(app_settings)
    app.state.submission_service = SubmissionService(app_settings.submissions_collection)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → BodyLimit → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=app_settings.max_body_size)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=app_settings.cors_methods_list,
        allow_headers=app_settings.cors_headers_list,
        expose_headers=["X-Request-ID"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(submissions.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    uvicorn.run(
        "formbridge.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `formbridge.main:app` to be importable
app = create_app()
