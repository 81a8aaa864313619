"""
CareConnect Access Gateway: Application Entry Point.

This module wires together:
- FastAPI application factory
- Structured logging (structlog)
- Edge gate, security-headers, request-ID and CORS middleware
- Global exception handlers
- Lifespan: DB health check on startup, graceful shutdown
"""
from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .api.pages import router as pages_router
from .api.v1 import router as v1_router
from .core.config import get_settings
from .core.exceptions import AppException, NavigationRequired
from .core.responses import error_response
from .db.session import close_db, get_db_manager
from .middleware import EdgeGateMiddleware


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging() -> None:
    """Configure structured logging via structlog."""
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries (SQLAlchemy, uvicorn) log through the stdlib.
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=log_level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Security-headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject security-hardening HTTP response headers on every response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Strict-Transport-Security"] = (
            "max-age=63072000; includeSubDomains; preload"
        )
        # Swagger / ReDoc need inline scripts and the jsdelivr CDN outside production.
        docs_paths = {"/docs", "/redoc", "/openapi.json"}
        if request.url.path in docs_paths and not get_settings().is_production:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com; "
                "frame-ancestors 'none'; "
                "base-uri 'none'"
            )
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
            )
        return response


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response pair.

    An incoming ``X-Request-ID`` header is honoured. The ID is stored in
    ``request.state.request_id``, returned in the ``X-Request-ID`` response
    header and bound to the structlog context for the request.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    Startup:
        1. Configure logging.
        2. Verify database connectivity. The schema is owned by Alembic
           (``alembic upgrade head``), never by ``create_all``.

    Shutdown:
        1. Close all database connections.
    """
    settings = get_settings()
    logger = structlog.get_logger()

    configure_logging()

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
    )

    db_health = await get_db_manager().health_check()
    logger.info("database_health_check", result=db_health)

    logger.info("application_started")

    yield

    logger.info("application_shutting_down")
    await close_db()
    logger.info("application_shutdown_complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    tags_metadata = [
        {
            "name": "Health",
            "description": "Health checks: liveness, readiness and comprehensive status.",
        },
        {
            "name": "Authentication",
            "description": "Role selection, role resolution and profile completion.",
        },
        {
            "name": "Admin - User Management",
            "description": "Verify and activate / deactivate users (super-admin).",
        },
        {
            "name": "Admin - System Logs",
            "description": "Audit trail of administrative lifecycle actions (super-admin).",
        },
    ]

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
# CareConnect Access Gateway

Role-based access gating for the CareConnect healthcare portal.

| Layer | Description |
|-------|-------------|
| **Edge gate** | Redirects every page request by session, role, path prefix and profile state |
| **Role guard** | Per-page check that the caller holds the page's role (or is super-admin) |
| **Role resolution** | Metadata, role cookie, `user_roles` table, identity record |

All API endpoints are versioned under `/api/v1/`.
        """,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        default_response_class=JSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
    )

    # ------------------------------------------------------------------
    # Middleware: last registered = outermost wrapper
    # ------------------------------------------------------------------

    # 1. Edge gate (innermost, sees the request just before routing)
    app.add_middleware(EdgeGateMiddleware)

    # 2. Security headers, so gate redirects carry them as well
    app.add_middleware(SecurityHeadersMiddleware)

    # 3. Request-ID, bound to structlog so gate log lines carry request_id
    app.add_middleware(RequestIDMiddleware)

    # 4. CORS (outermost, answers preflight requests before the gate)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(v1_router)
    app.include_router(pages_router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the application."""
    logger = structlog.get_logger()

    @app.exception_handler(NavigationRequired)
    async def _navigation(request: Request, exc: NavigationRequired) -> RedirectResponse:
        logger.info(
            "navigation_required",
            path=request.url.path,
            location=exc.location,
            reason=exc.details.get("reason"),
        )
        return RedirectResponse(exc.location, status_code=307)

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        logger.warning(
            "application_exception",
            error_code=exc.error_code,
            message=exc.message,
            path=request.url.path,
        )
        return error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
        validation_errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        return error_response(
            request,
            422,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"validation_errors": validation_errors},
        )

    @app.exception_handler(Exception)
    async def _generic_exc(request: Request, exc: Exception) -> JSONResponse:
        settings = get_settings()
        logger.exception("unhandled_exception", error=str(exc), path=request.url.path)
        # Never expose internal details in production
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"
        return error_response(request, 500, "INTERNAL_ERROR", message)


# ---------------------------------------------------------------------------
# Module-level application instance (consumed by uvicorn / gunicorn)
# ---------------------------------------------------------------------------
app = create_application()
