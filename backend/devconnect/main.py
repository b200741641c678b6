"""
DevConnect Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, the schema registry, exception
       handlers and routers; uvicorn serves the module-level `app`
       (uvicorn devconnect.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │    /api/auth   /api/projects   /api/comments             │
    │    /api/profiles   /health                               │
    │                                                          │
    │  app.state.schema_registry: frozen SchemaRegistry        │
    │                                                          │
    │  Exception Handlers:                                     │
    │    ApiError → its status │ HTTP 404 → NOT_FOUND_ERROR    │
    │    RequestValidationError → 400 │ Exception → 500        │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, registry summary
    Shutdown: close the auth API client, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devconnect import __version__
from devconnect.config import settings
from devconnect.database import dispose_engine
from devconnect.exceptions import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RequestError,
    ValidationError,
    translate_error,
)
from devconnect.middleware.logging import RequestLoggingMiddleware
from devconnect.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDLogFilter,
    RequestIDMiddleware,
)
from devconnect.routes import auth, comments, health, profiles, projects
from devconnect.services.auth_client import auth_client
from devconnect.validation import SchemaRegistry, build_default_registry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] [a1b2c3d4e5f6] devconnect.services.project_service: ...
    Records emitted outside a request carry "-" as their request id.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Chatty third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("DevConnect Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: public reads and /health still work without secrets
        logger.error("Configuration error: %s", str(e))

    registry: SchemaRegistry = app.state.schema_registry
    logger.info("Schema registry: %d schemas (frozen=%s)", len(registry.names()), registry.frozen)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("DevConnect Backend shutting down...")
    await auth_client.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # request.state is shared through the ASGI scope, so this also works in
    # the outermost catch-all handler, after the middleware context is gone
    return getattr(request.state, "request_id", "")


def _log_api_error(request: Request, error: ApiError, rid: str) -> None:
    """Write one log record per translated error; never lets logging break the response."""
    try:
        level = logging.ERROR if error.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            "[%s] %s %s -> %d %s: %s",
            rid,
            request.method,
            request.url.path,
            error.status_code,
            error.kind,
            error.message,
            extra={
                "request_id": rid,
                "error_name": error.kind,
                "error_code": error.code,
                "status": error.status_code,
                "path": request.url.path,
                "method": request.method,
                "error_timestamp": error.timestamp,
            },
        )
    except Exception:
        sys.stderr.write("devconnect: failed to log API error\n")


def render_error(request: Request, error: ApiError) -> JSONResponse:
    rid = _request_id(request)
    _log_api_error(request, error, rid)

    headers = {REQUEST_ID_HEADER: rid} if rid else {}
    retry_after = error.details.get("retry_after")
    if error.status_code == 429 and retry_after:
        headers["Retry-After"] = str(retry_after)
    if isinstance(error, AuthenticationError):
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Route every failure through the error taxonomy.

    Handler hierarchy:
        ApiError                → its own status (400/401/403/404/409/429/500/502)
        HTTPException (Starlette) → NotFoundError for unknown routes, else the
                                  matching kind
        RequestValidationError  → ValidationError (400)
        Exception (fallback)    → translate_error(), 500 unless recognized

    Responses never contain stack traces or SQL; the traceback of an
    unexpected fault is logged server-side only.
    """

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return render_error(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error: ApiError = NotFoundError(f"Route {request.method} {request.url.path}")
        elif exc.status_code == 401:
            error = AuthenticationError(str(exc.detail))
        elif exc.status_code == 403:
            error = AuthorizationError(str(exc.detail))
        elif exc.status_code == 405:
            error = RequestError(f"Method {request.method} not allowed for {request.url.path}")
            error.status_code = 405
        elif 400 <= exc.status_code < 500:
            error = RequestError(str(exc.detail))
            error.status_code = exc.status_code
        else:
            error = ApiError(str(exc.detail), status_code=exc.status_code)
        return render_error(request, error)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = {}
        for item in exc.errors():
            location = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
            errors.setdefault(".".join(location) or "request", item.get("msg", "invalid value"))
        return render_error(request, ValidationError("Invalid input data", errors))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        error = translate_error(exc)
        if not isinstance(exc, ApiError):
            logger.error(
                "[%s] Unhandled %s",
                _request_id(request),
                type(exc).__name__,
                exc_info=exc,
            )
        return render_error(request, error)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(registry: Optional[SchemaRegistry] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        registry: Frozen schema registry used by the request validators.
                  Defaults to build_default_registry(); tests may pass their own.
    """
    app = FastAPI(
        title="DevConnect API",
        description=(
            "Backend for a developer portfolio network: accounts, projects, "
            "profiles and threaded comments with likes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.schema_registry = (registry or build_default_registry()).freeze()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials="*" not in settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(projects.router)
    app.include_router(comments.router)
    app.include_router(profiles.router)
    app.include_router(health.router)

    return app


app = create_app()
