"""
api/main.py -- FastAPI application entry point for NoteSafe.

Run with:      uvicorn asgi:app --reload
               python main.py --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for local browser origins
  2. log_requests    -- one access-log line per request with latency

Lifespan builds every long-lived collaborator exactly once, from Settings,
and hangs it on app.state:

  engine            -- SQLAlchemy engine (schema created on startup)
  user_store        -- SqlUserStore
  note_store        -- SqlNoteStore
  auth_service      -- AuthService(user_store, PasswordHasher, TokenService)
  identity_resolver -- IdentityResolver(TokenService)

The signing secret goes from Settings straight into the TokenService
constructor. Nothing else reads it.

Domain exceptions (core/errors.py) are mapped to HTTP here and only here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.notes import router as notes_router
from auth.identity import IdentityResolver
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import SqlUserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.db import create_db_engine, ping
from core.errors import (
    DuplicateIdentity,
    InternalFailure,
    InvalidCredentials,
    NoteSafeError,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from notes.store import SqlNoteStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("notesafe.api")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire stores and services from Settings; dispose the engine on shutdown.

    Startup order matters: the engine first (creates the schema), then the
    stores that bind to it, then the services that depend on the stores.
    """
    settings = get_settings()
    logging.getLogger("notesafe").setLevel(settings.log_level.upper())
    logger.info("NoteSafe API starting up")

    app.state.engine = create_db_engine(settings.database_url)
    app.state.user_store = SqlUserStore(app.state.engine)
    app.state.note_store = SqlNoteStore(app.state.engine)

    tokens = TokenService(
        secret_key=settings.secret_key,
        ttl_seconds=settings.token_expire_seconds,
        issuer=settings.token_issuer,
    )
    app.state.auth_service = AuthService(
        app.state.user_store,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens,
    )
    app.state.identity_resolver = IdentityResolver(tokens)
    logger.info(
        "Auth initialized (token_ttl=%ds, bcrypt_rounds=%d)",
        settings.token_expire_seconds,
        settings.bcrypt_rounds,
    )

    yield

    # Shutdown
    app.state.engine.dispose()
    logger.info("NoteSafe API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="NoteSafe API",
    description="Multi-tenant notes with per-owner isolation.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type"],
    allow_credentials=True,
    max_age=300,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Pattern: Interceptor / Chain of Responsibility. Every request passes through
# this coroutine before reaching any route handler. Only method, path, status
# and latency are logged -- never headers, so bearer tokens stay out of logs.
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(notes_router, prefix="/api/v1", tags=["Notes"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[NoteSafeError], int] = {
    ValidationFailed: 400,
    DuplicateIdentity: 409,
    InvalidCredentials: 401,
    Unauthenticated: 401,
    NotFound: 404,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(NoteSafeError)
async def domain_error_handler(request: Request, exc: NoteSafeError) -> JSONResponse:
    """Render a domain error.

    Internal failures (store, hashing, signing) are logged with their op tag
    and cause, and the client gets the same opaque body as any other 500.
    Unauthenticated always renders the same message whatever the internal
    reason was.
    """
    if isinstance(exc, InternalFailure):
        logger.error("Internal failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return _error_response(500, "internal_error", "An unexpected error occurred.")

    status_code = next(
        (status for cls, status in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        None,
    )
    if status_code is None:
        # TokenError subclasses are meant to be translated by IdentityResolver.
        logger.error("Unmapped domain error on %s %s: %r", request.method, request.url.path, exc)
        return _error_response(500, "internal_error", "An unexpected error occurred.")

    if isinstance(exc, Unauthenticated):
        resp = _error_response(401, exc.code, "Authentication required.")
        resp.headers["WWW-Authenticate"] = "Bearer"
        return resp
    return _error_response(status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when request body or path params fail validation.

    Same status and code as ValidationFailed so clients see one kind of
    "bad input" error whichever layer caught it. Only the location and
    message of each error are rendered; pydantic's "input" would echo the
    submitted value, password included.
    """
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return _error_response(400, "validation_failed", "Request validation failed.", detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it -- str(dict) produces a Python repr,
    not JSON.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No authentication.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    db_ok = ping(request.app.state.engine)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
