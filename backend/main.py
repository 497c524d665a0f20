"""
EOD Watch Backend - FastAPI Application

Serves cached end-of-day and 4-hour bars to the chart frontend, plus the
frontend's static files when a public/ directory is present.
"""

import logging
import math
import time
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from backend.api import data, health
from backend.backend_core.config import settings
from eodwatch.data.factory import create_delta_cache_manager
from eodwatch.utils.error_handling import (
    BarsError,
    InvalidSymbol,
    RateLimited,
    StorageError,
    UpstreamError,
)
from eodwatch.utils.timestamp import utc_now

# Configure logging early
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

if settings.DEBUG:
    logging.getLogger("eodwatch").setLevel(logging.DEBUG)
    logging.getLogger("backend").setLevel(logging.DEBUG)

app = FastAPI(
    title="EOD Watch",
    description="Delta-cached end-of-day price bars",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests."""
    start_time = time.time()
    if settings.DEBUG:
        logger.debug(f"REQUEST {request.method} {request.url.path} params={dict(request.query_params)}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info("RESPONSE %s %s - %s (%.3fs)", request.method, request.url.path, response.status_code, process_time)
    return response


def _error_response(status_code: int, error: str, exc: Exception, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": "Failed to fetch market data",
            "detail": str(exc),
        },
        headers=headers,
    )


@app.exception_handler(BarsError)
async def bars_error_handler(request: Request, exc: BarsError):
    """Map cache errors to HTTP status codes."""
    if isinstance(exc, InvalidSymbol):
        return _error_response(400, "invalid_symbol", exc)
    if isinstance(exc, RateLimited):
        retry_after = max(1, math.ceil((exc.until - utc_now()).total_seconds()))
        logger.info(f"Rate limited request {request.url.path}: retry after {retry_after}s")
        return _error_response(429, "rate_limited", exc, headers={"Retry-After": str(retry_after)})
    if isinstance(exc, UpstreamError):
        logger.error(f"📡 Upstream error on {request.url.path}: {exc}")
        return _error_response(502, "upstream_error", exc)
    if isinstance(exc, StorageError):
        logger.error(f"Cache storage error on {request.url.path}: {exc}")
        return _error_response(500, "storage_error", exc)
    logger.error(f"Unhandled cache error on {request.url.path}: {exc}")
    return _error_response(500, "server_error", exc)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "server_error", "message": "Internal server error", "detail": str(exc)}
    )


@app.get("/healthz")
async def healthz():
    return {"ok": True}


app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(data.router, tags=["data"])

# Mounted last so API routes take precedence over static paths
_static_dir = Path(settings.STATIC_DIR)
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(_static_dir), html=True), name="static")


@app.on_event("startup")
async def startup_event():
    """Create the cache manager."""
    if not settings.TIINGO_TOKEN:
        logger.error("❌ Missing TIINGO_TOKEN - /api/data and /eod will return 503")
        return

    app.state.cache_manager = create_delta_cache_manager(
        api_token=settings.TIINGO_TOKEN,
        cache_dir=settings.CACHE_DIR,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        max_bars=settings.MAX_BARS,
        rate_limit_backoff_minutes=settings.RATE_LIMIT_BACKOFF_MINUTES,
    )
    logger.info(f"EOD Watch backend starting up (cache dir: {settings.CACHE_DIR})")
    logger.info(f"CORS origins: {settings.cors_origins}")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the upstream HTTP client."""
    manager = getattr(app.state, "cache_manager", None)
    if manager is not None:
        await manager.aclose()
    logger.info("EOD Watch backend shutting down...")


if __name__ == "__main__":
    import sys
    import uvicorn

    if not settings.TIINGO_TOKEN:
        logger.error("❌ Missing TIINGO_TOKEN in .env")
        sys.exit(1)

    uvicorn.run(
        "backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
