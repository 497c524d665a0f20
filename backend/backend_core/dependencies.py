"""
FastAPI dependencies shared by the routers.
"""

from fastapi import HTTPException, Request

from eodwatch.data.delta_cache import DeltaCacheManager


def get_cache_manager(request: Request) -> DeltaCacheManager:
    """
    The DeltaCacheManager created at startup.

    Tests replace this dependency through ``app.dependency_overrides``.
    """
    manager = getattr(request.app.state, "cache_manager", None)
    if manager is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "not_configured",
                "message": "Market data is unavailable: TIINGO_TOKEN is not configured",
            },
        )
    return manager
