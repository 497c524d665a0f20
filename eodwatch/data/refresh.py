"""
Batch cache refresh for a watchlist.

Symbols are refreshed in fixed-size groups; each group runs concurrently and
the next group starts only after a pause, which keeps the request rate under
the provider's ceiling.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence, Tuple
import asyncio
import logging
import time

from eodwatch.data.delta_cache import DeltaCacheManager
from eodwatch.models.bar import Timeframe
from eodwatch.utils.error_handling import BarsError

logger = logging.getLogger(__name__)

DEFAULT_WATCHLIST = [
    "AAPL", "META", "GOOGL", "TSLA", "MSFT", "NVDA", "AMZN", "NFLX",
    "SPY", "QQQ", "IWM", "BTCUSD", "AMD", "CRM", "SNOW",
]
TEST_WATCHLIST = ["AAPL", "META", "TSLA"]

BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 10.0

# (timeframe, bars) warmed per symbol
REFRESH_PLAN: List[Tuple[Timeframe, int]] = [
    (Timeframe.DAILY, 1000),
    (Timeframe.WEEKLY, 200),
    (Timeframe.MONTHLY, 60),
]


@dataclass
class RefreshSummary:
    success_count: int
    error_count: int
    duration: float

    @property
    def success_rate(self) -> float:
        total = self.success_count + self.error_count
        return 100.0 * self.success_count / total if total else 0.0


async def refresh_symbol(manager: DeltaCacheManager, symbol: str) -> bool:
    """Warm every timeframe of one symbol. Returns False if any step failed."""
    logger.info(f"Updating cache for {symbol}...")
    try:
        for timeframe, days in REFRESH_PLAN:
            await manager.get_bars(symbol, days, timeframe)
    except BarsError as e:
        logger.warning(f"❌ Failed to update {symbol}: {e}")
        return False
    logger.info(f"✅ Updated {symbol} cache successfully")
    return True


async def refresh_all(
    manager: DeltaCacheManager,
    symbols: Sequence[str] = DEFAULT_WATCHLIST,
    batch_size: int = BATCH_SIZE,
    batch_delay: float = BATCH_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RefreshSummary:
    """
    Refresh ``symbols`` in groups of ``batch_size``, pausing ``batch_delay``
    seconds between groups.

    Args:
        manager: Cache manager to warm
        symbols: Symbols to refresh
        batch_size: Symbols refreshed concurrently per group
        batch_delay: Seconds to wait between groups (not after the last one)
        sleep: Awaitable sleep, replaceable in tests
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    symbols = list(symbols)
    total_batches = (len(symbols) + batch_size - 1) // batch_size
    logger.info(
        f"Starting auto-update for {len(symbols)} symbols "
        f"(batch size: {batch_size}, delay: {batch_delay}s between batches)"
    )

    start_time = time.monotonic()
    success_count = 0
    error_count = 0

    for i in range(0, len(symbols), batch_size):
        batch = symbols[i:i + batch_size]
        batch_num = i // batch_size + 1
        logger.info(f"Processing batch {batch_num}/{total_batches}: {', '.join(batch)}")

        results = await asyncio.gather(
            *(refresh_symbol(manager, symbol) for symbol in batch),
            return_exceptions=True,
        )
        for symbol, result in zip(batch, results):
            if result is True:
                success_count += 1
            else:
                error_count += 1
                if isinstance(result, BaseException):
                    logger.error(f"❌ {symbol} failed: {result!r}")

        if i + batch_size < len(symbols):
            logger.info(f"Waiting {batch_delay}s before next batch...")
            await sleep(batch_delay)

    duration = round(time.monotonic() - start_time, 1)
    logger.info(f"Auto-update completed in {duration}s - success: {success_count}, errors: {error_count}")
    return RefreshSummary(success_count=success_count, error_count=error_count, duration=duration)
