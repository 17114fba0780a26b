"""
api/main.py -- FastAPI application entry point for RoleGate.

Run with:  uvicorn api.main:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. log_requests          -- logs method, path, status, caller and latency
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. access_control        -- per-client rate limit, then AccessPolicy.decide(),
                              both before routing

Access control is a middleware rather than a per-route dependency so that
every path is gated, including paths no route serves: an anonymous request
for /nope gets 401, an authenticated one gets 404. The rate limit is counted
in the same place, so unrouted paths are throttled too and an over-limit
client never reaches bcrypt.

Lifespan builds the AccessPolicy from the seed configuration. A malformed
seed raises ConfigurationError there and the server refuses to start.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import check_request_limit
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.accounts import router as accounts_router
from auth.dependencies import access_request_from, denial
from auth.policy import AccessPolicy
from auth.seed import build_policy
from core.config import get_settings

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("rolegate.api")

# Paths served without consulting the access policy or the rate limit.
_PUBLIC_PATHS = frozenset({"/health"})


def _error_response(status_code: int, code: str, message: str, detail: str | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
        headers=headers,
    )


def _render_http_exception(exc: StarletteHTTPException) -> JSONResponse:
    """Render an HTTPException in the error envelope, keeping its headers.

    A dict detail is already the envelope body (see auth.dependencies.denial);
    anything else is wrapped under a generic http_<status> code.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=exc.headers)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the access policy on startup; nothing to release on shutdown.

    The policy is immutable once built, so a single instance on app.state is
    shared by every request without locking.
    """
    logger.info("RoleGate starting up")
    app.state.policy = build_policy()
    yield
    logger.info("RoleGate shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="RoleGate",
    description="Role-based access control over HTTP Basic authentication.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Access control middleware
#
# Registered first so it ends up innermost, behind the host check.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def access_control(request: Request, call_next):
    """Rate-limit, then authenticate and authorize the request before routing.

    bcrypt is slow, so decide() runs in the threadpool rather than on the
    event loop.
    """
    if request.url.path in _PUBLIC_PATHS:
        return await call_next(request)

    retry_after = check_request_limit(request)
    if retry_after is not None:
        logger.warning("Rate limit exceeded on %s", request.url.path)
        return _error_response(
            429,
            "rate_limited",
            "Too many requests.",
            headers={"Retry-After": str(retry_after)},
        )

    policy: AccessPolicy = request.app.state.policy
    decision = await run_in_threadpool(policy.decide, access_request_from(request))
    if not decision.allowed:
        return _render_http_exception(denial(decision.outcome))

    request.state.user = decision.user
    return await call_next(request)


app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    user = getattr(request.state, "user", None)
    logger.info(
        "%s %s %d %.1fms client=%s user=%s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
        user.username if user else "-",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(accounts_router, tags=["Accounts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on Starlette's base class so router 404/405 responses get the
    envelope too. exc.headers is passed through: a 401 without its
    WWW-Authenticate challenge would leave Basic-auth clients with no prompt.
    """
    return _render_http_exception(exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Listed in _PUBLIC_PATHS: load balancer checks carry no credentials and are
# never rate limited.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness and current version."""
    return HealthResponse(version=__version__)
