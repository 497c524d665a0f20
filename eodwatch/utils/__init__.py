"""
Utility modules for the bar cache.

This module provides error types, timestamp helpers and config loading.
"""

from eodwatch.utils.error_handling import (
    BarsError,
    InvalidSymbol,
    RateLimited,
    StorageError,
    UpstreamError,
)

__all__ = [
    "BarsError",
    "InvalidSymbol",
    "RateLimited",
    "StorageError",
    "UpstreamError",
]
