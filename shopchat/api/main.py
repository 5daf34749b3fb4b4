"""FastAPI application for the ShopChat API.

Provides the main application instance with routers, middleware,
and exception handlers configured.
"""

import logging
import sys
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from shopchat.config import get_config

_config = get_config()

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=_config.app.log_level.upper(),
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("shopchat").setLevel(_config.app.log_level.upper())
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shopchat import __version__
from shopchat.api.routes import chat, webhooks
from shopchat.db.connection import async_init_db, check_database, close_async_db
from shopchat.errors import DomainError, format_error_response, status_for

logger = logging.getLogger(__name__)

# Module-level state for health endpoint
_startup_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: create tables on startup, dispose engine on shutdown."""
    global _startup_time
    _startup_time = _time.monotonic()
    await async_init_db()
    logger.info(
        "ShopChat API started (environment=%s, model=%s)",
        _config.app.environment,
        _config.llm.model,
    )
    try:
        yield
    finally:
        await close_async_db()


app = FastAPI(
    title="ShopChat API",
    description="Catalog-grounded customer support chat for online stores",
    version=__version__,
    lifespan=lifespan,
)

# CORS allowlist is config-driven. If empty, CORS is disabled (same-origin only).
if _config.app.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_config.app.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
    )


def _include_details() -> bool:
    return not get_config().app.is_production


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map typed domain errors to their registered HTTP status.

    The body carries the generic public message; the internal detail is
    only included outside production.
    """
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: [%s] %s", request.method, request.url.path, exc.code, exc)
    else:
        logger.info("%s %s rejected: [%s] %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=status,
        content=format_error_response(exc, include_details=_include_details()),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    errors = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    code = "E-2002" if request.url.path.endswith("/chat/order") else "E-2099"
    body = format_error_response(
        DomainError("Request validation failed", code=code),
        include_details=_include_details(),
    )
    body["errors"] = errors
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the traceback, return a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=format_error_response(exc, include_details=_include_details()),
    )


app.include_router(chat.router, prefix="/api/v1")
app.include_router(webhooks.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Liveness check.

    Returns:
        Dictionary with status, version and uptime.
    """
    uptime = _time.monotonic() - _startup_time if _startup_time else 0.0
    return {
        "status": "healthy",
        "version": __version__,
        "uptime_seconds": round(uptime, 1),
    }


@app.get("/readyz")
async def readiness_check():
    """Dependency-aware readiness check (datastore reachable)."""
    try:
        await check_database()
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "checks": {"database": "error"}},
        )
    return {"status": "ready", "checks": {"database": "ok"}}
