"""
CodeSnap Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) validates configuration, builds the engine,
       session factory and admin authenticator, stores them on app.state,
       then registers middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn codesnap.main:app`) and the test suite
       (`create_app(test_settings)`).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐   │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │   │
    │  └──────────────┘ └──────────┘ └─────────────────┘   │
    │                                                      │
    │  Routes:                                             │
    │  ┌──────────────┐ ┌──────────────┐ ┌──────────────┐  │
    │  │ /api/pastes  │ │ /api/admin   │ │ /health      │  │
    │  └──────────────┘ └──────────────┘ └──────────────┘  │
    │                                                      │
    │  Exception Handlers:                                 │
    │  ┌────────────────────────────────────────────────┐  │
    │  │ 400 │ 403 │ 404 │ 413 │ 429 │ 500 (generic)    │  │
    │  └────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Seed example pastes (SEED_EXAMPLES=true, empty table only)
    3. Start the expiry sweeper (EXPIRY_SWEEP_INTERVAL_SECONDS > 0)

    Shutdown:
    1. Stop the sweeper
    2. Dispose the database engine
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from codesnap import __version__
from codesnap.config import Settings, get_settings
from codesnap.database import create_engine_from_settings, create_session_factory, dispose_engine
from codesnap.exceptions import (
    AuthorizationError,
    CodeSnapError,
    NotFoundError,
    PayloadTooLargeError,
    PersistenceError,
    RateLimitExceededError,
    ValidationError,
)
from codesnap.middleware.logging import RequestLoggingMiddleware
from codesnap.middleware.rate_limit import RateLimitMiddleware
from codesnap.middleware.request_id import RequestIDMiddleware, request_id_var
from codesnap.routes import admin, health, languages, pastes
from codesnap.services.admin_auth import AdminAuthenticator
from codesnap.services.maintenance import ExpirySweeper, seed_example_pastes

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, on stdout
    (Docker captures it). Chatty third-party loggers are raised to WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("CodeSnap Backend starting up...")

    await seed_example_pastes(app.state.session_factory, settings)

    sweeper: Optional[ExpirySweeper] = None
    if settings.expiry_sweep_interval_seconds > 0:
        sweeper = ExpirySweeper(
            app.state.session_factory,
            interval=settings.expiry_sweep_interval_seconds,
        )
        sweeper.start()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CodeSnap Backend shutting down...")
    if sweeper is not None:
        await sweeper.stop()
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "requestId": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the CodeSnap exception hierarchy to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400 (details returned)
        AuthorizationError      → 403
        NotFoundError           → 404
        PayloadTooLargeError    → 413
        RateLimitExceededError  → 429 + Retry-After
        PersistenceError        → 500, generic message
        CodeSnapError (base)    → 500, generic message
        Exception (fallback)    → 500, generic message

    Server-side errors never expose SQL, driver messages or stack traces;
    those are logged with the request id instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning(
            "[%s] Forbidden %s %s | Context: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            exc.context,
        )
        return JSONResponse(status_code=403, content=_error_body("forbidden", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(PayloadTooLargeError)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError):
        logger.warning("[%s] Upload rejected: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=413,
            content=_error_body("payload_too_large", exc.message, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error(
            "[%s] Persistence error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(CodeSnapError)
    async def handle_codesnap_error(request: Request, exc: CodeSnapError):
        logger.error(
            "[%s] Unhandled application error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit configuration; defaults to get_settings() (env/.env)
    Raises:
        ValueError: required configuration (ADMIN_PASSWORD) is missing
    """
    settings = settings or get_settings()
    settings.validate_required()
    setup_logging(settings)

    app = FastAPI(
        title="CodeSnap API",
        description=(
            "Pastebin service: share code snippets and small CSV/XML files "
            "through short random ids, with optional expiration."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    engine = create_engine_from_settings(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.authenticator = AdminAuthenticator(
        settings.admin_password,
        token_ttl_seconds=settings.admin_token_ttl_seconds,
    )
    app.state.started_at = time.monotonic()

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(pastes.router)
    app.include_router(admin.router)
    app.include_router(languages.router)
    app.include_router(health.router)

    return app


# uvicorn codesnap.main:app
app = create_app()
