"""
Factory for the bar cache - wires a TiingoAdapter and a CacheStore into a
DeltaCacheManager, either from explicit arguments or from a config dict.
"""

from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict, Optional
import logging

from eodwatch.data.cache import CacheStore
from eodwatch.data.delta_cache import DeltaCacheManager, MAX_BARS, RATE_LIMIT_BACKOFF
from eodwatch.data.tiingo import DEFAULT_TIMEOUT_SECONDS, TiingoAdapter

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = "cache"


def create_delta_cache_manager(
    api_token: str,
    cache_dir: str = DEFAULT_CACHE_DIR,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_bars: int = MAX_BARS,
    rate_limit_backoff_minutes: float = RATE_LIMIT_BACKOFF.total_seconds() / 60,
) -> DeltaCacheManager:
    """
    Create a DeltaCacheManager backed by Tiingo.

    Args:
        api_token: Tiingo API token
        cache_dir: Directory for cache files
        timeout: Upstream request timeout in seconds
        max_bars: Retained bars per symbol/timeframe
        rate_limit_backoff_minutes: Backoff after a failed first fetch

    Raises:
        ValueError: If the token is missing
    """
    source = TiingoAdapter(api_token=api_token, timeout=timeout)
    store = CacheStore(cache_dir)
    manager = DeltaCacheManager(
        store=store,
        source=source,
        max_bars=max_bars,
        rate_limit_backoff=timedelta(minutes=rate_limit_backoff_minutes),
    )
    logger.info(f"Created DeltaCacheManager (cache_dir: {cache_dir}, max_bars: {max_bars})")
    return manager


def create_delta_cache_manager_from_config(
    env_config: Dict[str, Any],
    cache_dir: Optional[str] = None,
) -> DeltaCacheManager:
    """
    Create a DeltaCacheManager from the environment config.

    Expected config structure:
        tiingo:
          api_token: "..."        # usually merged in from secrets.yaml
          timeout: 15.0
        cache:
          dir: "cache"
          max_bars: 1500
          rate_limit_backoff_minutes: 15

    Args:
        env_config: The full environment config dictionary
        cache_dir: Directory for cache files (overrides config if provided)

    Raises:
        ValueError: If the Tiingo token is missing
    """
    tiingo_config = env_config.get("tiingo") or {}
    cache_config = env_config.get("cache") or {}

    api_token = tiingo_config.get("api_token", "")
    if not api_token:
        raise ValueError(
            "Missing 'tiingo.api_token' in config. "
            "Set it in config/secrets.yaml or pass TIINGO_TOKEN."
        )

    return create_delta_cache_manager(
        api_token=api_token,
        cache_dir=cache_dir or cache_config.get("dir", DEFAULT_CACHE_DIR),
        timeout=float(tiingo_config.get("timeout", DEFAULT_TIMEOUT_SECONDS)),
        max_bars=int(cache_config.get("max_bars", MAX_BARS)),
        rate_limit_backoff_minutes=float(
            cache_config.get("rate_limit_backoff_minutes", RATE_LIMIT_BACKOFF.total_seconds() / 60)
        ),
    )
