"""
Error types and error-message helpers for the bar cache.

The taxonomy mirrors how failures are handled:
- InvalidSymbol: rejected before any I/O
- RateLimited: an active backoff window; callers should retry after ``until``
- UpstreamError: the price provider failed for a reason other than a 429
- StorageError: the cache file could not be written
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional


class BarsError(Exception):
    """Base class for all errors raised by the bar cache."""


class InvalidSymbol(BarsError, ValueError):
    def __init__(self, symbol: str):
        super().__init__(f"Invalid symbol: {symbol!r}")
        self.symbol = symbol


class RateLimited(BarsError):
    def __init__(self, until: datetime, message: Optional[str] = None):
        super().__init__(message or f"Rate limited until {until.isoformat()}")
        self.until = until


class UpstreamError(BarsError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(BarsError):
    pass


def format_api_error_message(
    source: str,
    symbol: Optional[str] = None,
    timeframe: Optional[str] = None,
    error: Optional[Exception] = None,
    additional_info: Optional[str] = None,
) -> str:
    """
    Format a standardized error message for log lines.

    Args:
        source: Component name (e.g., "Tiingo", "Cache")
        symbol: Optional symbol that was being fetched
        timeframe: Optional timeframe tag
        error: Optional exception that occurred
        additional_info: Optional additional information to include

    Returns:
        Formatted error message string

    Examples:
        >>> format_api_error_message("Tiingo", symbol="AAPL", error=ValueError("boom"))
        '[Tiingo] symbol=AAPL error: boom'
    """
    parts = [f"[{source}]"]

    if symbol:
        parts.append(f"symbol={symbol}")
    if timeframe:
        parts.append(f"timeframe={timeframe}")

    if error:
        parts.append(f"error: {error}")

    if additional_info:
        parts.append(additional_info)

    return " ".join(parts)
