"""
api/main.py -- FastAPI application entry point for authgate.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the collaborators once (Firebase app, identity provider
client, user record store, account service) and stores them on app.state.
Routes and the token verification dependency read them from there; nothing
else holds a process-wide handle.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.firebase import delete_firebase_app, init_firebase_app
from auth.provider import FirebaseIdentityProvider
from auth.service import AccountService
from auth.store import UserRecordStore
from core.config import get_settings
from core.errors import GatewayError

__version__ = "0.1.0"

_GENERIC_SERVER_ERROR = "Server error"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")

_settings = get_settings()
if _settings.debug:
    logging.getLogger("authgate").setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the collaborators on startup and release them on shutdown.

    Startup order matters:
      1. Firebase app -- both clients below are bound to it.
      2. Identity provider client and user record store.
      3. Account service -- composes the two.
    """
    settings = get_settings()
    logger.info("authgate API starting up")
    firebase_app = init_firebase_app(settings)
    provider = FirebaseIdentityProvider(firebase_app, settings)
    store = UserRecordStore.from_app(firebase_app, settings.users_collection)
    app.state.identity_provider = provider
    app.state.user_store = store
    app.state.account_service = AccountService(
        provider,
        store,
        compensate_orphaned_accounts=settings.compensate_orphaned_accounts,
    )
    logger.info(
        "Auth initialized (app=%s, collection=%s, password_login=%s)",
        firebase_app.name,
        settings.users_collection,
        "enabled" if settings.web_api_key else "unconfigured",
    )

    yield

    # Shutdown
    provider.close()
    delete_firebase_app(firebase_app)
    logger.info("authgate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="authgate API",
    description="Signup, login and current-user endpoints in front of Firebase Auth and Firestore.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler; wall-clock time around call_next gives per-response latency.
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

app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"error": "<message>"} envelope.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _server_error_message(message: str) -> str:
    """Echo internal error text only when EXPOSE_INTERNAL_ERRORS is on."""
    if get_settings().expose_internal_errors and message:
        return message
    return _GENERIC_SERVER_ERROR


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Map the closed error taxonomy to HTTP status + {"error": message}."""
    if exc.is_client_error:
        logger.warning(
            "%s %s -> %d %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.kind.value,
            exc.message,
        )
        return _error(exc.status_code, exc.message)

    logger.error(
        "%s %s -> %d %s (code=%s): %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.kind.value,
        exc.code,
        exc.message,
    )
    return _error(exc.status_code, _server_error_message(exc.message))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    slowapi stores the window on the exception as exc.retry_after (int seconds)
    on recent releases; fall back to 60.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Too many requests.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly-typed fields -> 400."""
    logger.warning("%s %s -> 400 invalid body: %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request body")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and any explicit HTTPException."""
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for failures outside the error taxonomy."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, _server_error_message(str(exc)))


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit applied -- health checks from load balancers must not be
# throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
