"""
api/main.py -- FastAPI application entry point for BlogEngine.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency for every request
  2. resolve_access_level  -- session -> allow-list -> request.state.access_level
  3. SessionMiddleware     -- authlib keeps the OAuth state value here
  4. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan owns the Database (one engine + pool for the whole process) and the
two stores built on it, and disposes of them symmetrically on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.entries import router as entries_router
from auth.dependencies import resolve_access_level
from auth.oauth import oauth as oauth_client
from auth.store import AuthorizationStore
from auth.tokens import _SECRET_KEY
from blog.store import BlogStore
from core.config import get_settings
from core.database import Database
from core.errors import BlogEngineError, NotFoundError, StoreError, ValidationError

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("blogengine.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The Database is created once here and handed to both stores --
    no module reaches for a global connection.
    """
    settings = get_settings()
    logger.info("BlogEngine API starting up")
    db = Database(settings.database_url, timeout=settings.store_timeout_seconds)
    db.create_all()
    app.state.db = db
    app.state.blog_store = BlogStore(db)
    app.state.auth_store = AuthorizationStore(db)
    app.state.oauth = oauth_client
    logger.info("Data store initialized (oauth_enabled=%s)", settings.oauth_enabled)

    yield

    db.close()
    logger.info("BlogEngine API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BlogEngine API",
    description="Published blog entries for readers; draft management for authorized editors.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the existing stack, so the LAST one added is the
# outermost. SlowAPI is innermost; SessionMiddleware sits outside it so the
# OAuth routes can read request.session.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

# SessionMiddleware is required by authlib to store the OAuth state value
# between the authorization redirect and the callback. It is a separate cookie
# from the editor session credential issued by auth/tokens.py.
app.add_middleware(SessionMiddleware, secret_key=_SECRET_KEY, https_only=get_settings().secure_cookies)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# Access policy runs before any handler. Registered before log_requests so
# the logger wraps it and reports its latency too.
app.middleware("http")(resolve_access_level)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(entries_router, prefix="/api/v1", tags=["Entries"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: ErrorDetail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error).model_dump())


@app.exception_handler(ValidationError)
async def entry_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """422 naming the offending field so the editor can correct the input."""
    return _error_response(exc.status_code, ErrorDetail(code=exc.code, message=exc.message, field=exc.field))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(exc.status_code, ErrorDetail(code=exc.code, message=exc.message))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Generic 500. The driver error was already logged by core.database."""
    logger.error("Store failure on %s %s", request.method, request.url.path)
    return _error_response(
        500,
        ErrorDetail(code="internal_error", message="An unexpected error occurred."),
    )


@app.exception_handler(BlogEngineError)
async def blog_engine_error_handler(request: Request, exc: BlogEngineError) -> JSONResponse:
    """Remaining domain errors (AuthorizationError -> 401, IdentityProviderError -> 502).

    IdentityProviderError messages may describe provider internals, so only
    the generic code reaches the client for 5xx statuses.
    """
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, ErrorDetail(code=exc.code, message="Upstream failure."))
    return _error_response(exc.status_code, ErrorDetail(code=exc.code, message=exc.message))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 when the request body or params do not match the schema."""
    return _error_response(
        422,
        ErrorDetail(code="validation_error", message="Request validation failed.", detail=str(exc.errors())),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and data store reachability."""
    db: Database = request.app.state.db
    return HealthResponse(
        version=__version__,
        components={"app": "ok", "database": "ok" if db.ping() else "error"},
    )
