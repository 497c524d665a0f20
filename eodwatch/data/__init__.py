"""
Data module - bar cache and its upstream.

This module exports:
- BarSource: Base class for upstream price providers
- TiingoAdapter: Tiingo daily/IEX adapter
- CacheStore: JSON file store, one record per symbol/timeframe
- DeltaCacheManager: Cache-first bar access with incremental refresh
- BarsResult: Result of DeltaCacheManager.get_bars
- resample_weekly / resample_monthly: Daily -> weekly/monthly aggregation
- refresh_all / refresh_symbol: Batch cache warm-up
- create_delta_cache_manager / create_delta_cache_manager_from_config: Factories
"""

from eodwatch.data.base import BarSource
from eodwatch.data.cache import CacheStore, sanitize_symbol
from eodwatch.data.delta_cache import BarsResult, DeltaCacheManager, merge_bars
from eodwatch.data.factory import create_delta_cache_manager, create_delta_cache_manager_from_config
from eodwatch.data.refresh import RefreshSummary, refresh_all, refresh_symbol
from eodwatch.data.resample import resample_monthly, resample_weekly
from eodwatch.data.tiingo import TiingoAdapter

__all__ = [
    "BarSource",
    "TiingoAdapter",
    "CacheStore",
    "sanitize_symbol",
    "DeltaCacheManager",
    "BarsResult",
    "merge_bars",
    "resample_weekly",
    "resample_monthly",
    "RefreshSummary",
    "refresh_all",
    "refresh_symbol",
    "create_delta_cache_manager",
    "create_delta_cache_manager_from_config",
]
