"""
Health check endpoints.
"""

from fastapi import APIRouter, Request
from datetime import datetime, timezone
import os

from backend.backend_core.config import settings

router = APIRouter()


@router.get("")
@router.get("/")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": os.getenv("APP_VERSION") or "0.1.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness check - verifies the cache manager is wired up."""
    manager = getattr(request.app.state, "cache_manager", None)
    checks = {
        "tiingo_token": "ok" if settings.TIINGO_TOKEN else "missing",
        "cache_manager": "ok" if manager is not None else "missing",
    }

    all_ready = all(status == "ok" for status in checks.values())

    return {
        "status": "ready" if all_ready else "not_ready",
        "checks": checks,
        "cache_dir": settings.CACHE_DIR,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
