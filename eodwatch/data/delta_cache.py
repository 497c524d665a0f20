"""
DeltaCacheManager - per-symbol bar cache that only asks the upstream for
what it does not have yet.

Request flow for a base timeframe (1d, 4h):

1. Validate the symbol.
2. Load the cached record.
3. If a rate-limit placeholder is active, fail with RateLimited; if its
   deadline has passed, forget it and continue as if nothing was cached.
4. Nothing cached: fetch the full lookback window (30 days for 4h, 5 years
   for 1d). An empty answer or an error leaves a placeholder so the next
   requests do not hammer the upstream for 15 minutes.
5. Newest cached bar is dated today or later: serve from cache.
6. Otherwise fetch from the day after the newest bar and merge. Failures
   here are logged and the cached bars are served as they are.
7. Return the trailing ``days`` bars.

Weekly and monthly requests are built from the daily series with an
inflated window and resampled.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import logging
import re

from eodwatch.data.base import BarSource
from eodwatch.data.cache import CacheStore, sanitize_symbol
from eodwatch.data.resample import resample_monthly, resample_weekly
from eodwatch.models.bar import Bar, Timeframe
from eodwatch.models.cache_record import CacheMeta, CacheRecord
from eodwatch.utils.error_handling import InvalidSymbol, RateLimited, format_api_error_message
from eodwatch.utils.timestamp import next_day, utc_now, years_before, ymd

logger = logging.getLogger(__name__)

MAX_BARS = 1500
RATE_LIMIT_BACKOFF = timedelta(minutes=15)
DAILY_LOOKBACK_YEARS = 5
INTRADAY_LOOKBACK_DAYS = 30

# Daily bars needed per derived bar
WEEKLY_INFLATION = 7
MONTHLY_INFLATION = 30

_SYMBOL_FORMAT = re.compile(r"^[A-Za-z0-9.\-]{1,10}$")


@dataclass
class BarsResult:
    symbol: str
    data: List[Bar] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"symbol": self.symbol, "data": [b.to_dict() for b in self.data]}


def validate_symbol(symbol: str) -> None:
    if not isinstance(symbol, str) or not _SYMBOL_FORMAT.match(symbol):
        raise InvalidSymbol(symbol)


def window_size(days: Any) -> int:
    """Requested bar count, clamped to at least 1."""
    try:
        n = int(days)
    except (TypeError, ValueError):
        n = 0
    return max(1, n)


def merge_bars(existing: List[Bar], delta: List[Bar], max_bars: int = MAX_BARS) -> Tuple[List[Bar], int]:
    """
    Append delta bars whose ``time`` is not cached yet, then keep the newest
    ``max_bars``.

    Returns:
        (merged bars, number of bars added)
    """
    seen = {b.time for b in existing}
    merged = list(existing)
    added = 0
    for bar in delta:
        if bar.time in seen:
            continue
        seen.add(bar.time)
        merged.append(bar)
        added += 1

    # Stable sort: a no-op for the usual strictly-newer delta
    merged.sort(key=lambda b: b.time)
    if len(merged) > max_bars:
        merged = merged[-max_bars:]
    return merged, added


class DeltaCacheManager:
    """
    Serves bars for (symbol, timeframe) from a CacheStore, topping it up from
    a BarSource.

    Example:
        >>> store = CacheStore("cache")
        >>> manager = DeltaCacheManager(store, TiingoAdapter(api_token="..."))
        >>> result = await manager.get_bars("AAPL", days=200, timeframe="1w")
    """

    def __init__(
        self,
        store: CacheStore,
        source: BarSource,
        clock: Optional[Callable[[], datetime]] = None,
        max_bars: int = MAX_BARS,
        rate_limit_backoff: timedelta = RATE_LIMIT_BACKOFF,
        daily_lookback_years: int = DAILY_LOOKBACK_YEARS,
        intraday_lookback_days: int = INTRADAY_LOOKBACK_DAYS,
    ):
        """
        Args:
            store: Where records are persisted
            source: Upstream price provider
            clock: Returns the current timezone-aware UTC time (default: utc_now)
            max_bars: Retained bars per symbol/timeframe
            rate_limit_backoff: How long a failed first fetch blocks the key
            daily_lookback_years: History requested on a first daily fetch
            intraday_lookback_days: History requested on a first 4h fetch
        """
        self._store = store
        self._source = source
        self._clock = clock or utc_now
        self._max_bars = max_bars
        self._rate_limit_backoff = rate_limit_backoff
        self._daily_lookback_years = daily_lookback_years
        self._intraday_lookback_days = intraday_lookback_days

        # Refreshes in progress, keyed by cache file; later callers join them
        self._inflight: Dict[Tuple[str, Timeframe], "asyncio.Task[List[Bar]]"] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def source(self) -> BarSource:
        return self._source

    async def aclose(self) -> None:
        await self._source.aclose()

    async def get_bars(
        self,
        symbol: str,
        days: int = 600,
        timeframe: Timeframe | str = Timeframe.DAILY,
    ) -> BarsResult:
        """
        Trailing ``days`` bars for a symbol at any supported timeframe.

        Raises:
            InvalidSymbol: Malformed symbol, before any I/O
            RateLimited: A backoff window is active, or the first fetch came back empty
            UpstreamError: The first fetch for this key failed
            StorageError: Fetched data could not be persisted
            ValueError: Unknown timeframe
        """
        validate_symbol(symbol)
        tf = Timeframe.parse(timeframe)
        n = window_size(days)

        if tf is Timeframe.WEEKLY:
            daily = await self.get_series(symbol, n * WEEKLY_INFLATION, Timeframe.DAILY)
            return BarsResult(symbol=symbol.upper(), data=resample_weekly(daily.data)[-n:])
        if tf is Timeframe.MONTHLY:
            daily = await self.get_series(symbol, n * MONTHLY_INFLATION, Timeframe.DAILY)
            return BarsResult(symbol=symbol.upper(), data=resample_monthly(daily.data)[-n:])
        return await self.get_series(symbol, n, tf)

    async def get_series(
        self,
        symbol: str,
        days: int,
        timeframe: Timeframe | str,
    ) -> BarsResult:
        """Trailing ``days`` bars of a cached base series (1d or 4h)."""
        tf = Timeframe.parse(timeframe)
        if tf.is_derived:
            raise ValueError(f"{tf.value} is resampled from daily bars; use get_bars()")
        validate_symbol(symbol)

        bars = await self._refresh_once(symbol, tf)

        n = window_size(days)
        return BarsResult(symbol=symbol.upper(), data=bars[-n:])

    async def _refresh_once(self, symbol: str, tf: Timeframe) -> List[Bar]:
        """
        Run at most one refresh per cache file at a time.

        A caller arriving while a refresh is in flight awaits that refresh's
        result (or error) instead of hitting the upstream again. Every caller,
        including the one that started it, awaits through ``asyncio.shield``
        so cancelling one caller leaves the refresh running for the others.
        """
        key = (sanitize_symbol(symbol), tf)
        task = self._inflight.get(key)
        if task is not None:
            logger.debug(f"[Cache] Joining in-flight refresh for {key[0]} {tf.value}")
        else:
            task = asyncio.ensure_future(self._refresh(symbol, tf))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, key: Tuple[str, Timeframe], task: "asyncio.Task[List[Bar]]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved even if every caller was cancelled
        if not task.cancelled():
            task.exception()

    async def _refresh(self, symbol: str, tf: Timeframe) -> List[Bar]:
        now = self._clock()
        record = await self._store.read(symbol, tf)

        if record.meta is not None and record.meta.is_rate_limited:
            until = _deadline(record.meta)
            if until is not None and now < until:
                logger.info(f"[Cache] Still rate limited for {symbol} {tf.value} until {until.isoformat()}")
                raise RateLimited(until)
            logger.info(f"[Cache] Rate limit window expired for {symbol} {tf.value} - attempting fetch")
            record = CacheRecord.empty()

        if record.meta is None:
            record = await self._first_fetch(symbol, tf, now)

        today = ymd(now)
        last_bar_date = record.meta.last_bar_date
        if last_bar_date and last_bar_date >= today:
            logger.debug(f"[Cache] Cache hit for {symbol} {tf.value} (fresh data)")
            return record.bars

        logger.info(f"[Cache] Cache stale for {symbol} {tf.value} (last: {last_bar_date}) - checking for updates")
        record = await self._delta_refresh(symbol, tf, record, now)
        return record.bars

    async def _first_fetch(self, symbol: str, tf: Timeframe, now: datetime) -> CacheRecord:
        if tf is Timeframe.FOUR_HOUR:
            since = now.date() - timedelta(days=self._intraday_lookback_days)
        else:
            since = years_before(now.date(), self._daily_lookback_years)
        logger.info(f"[Cache] First-time cache miss for {symbol} {tf.value} - fetching history since {since}")

        try:
            fetched = await self._fetch(symbol, tf, since)
        except Exception as e:
            logger.warning(format_api_error_message(
                "Cache", symbol=symbol, timeframe=tf.value, error=e,
                additional_info="first-time fetch failed",
            ))
            await self._write_placeholder(symbol, tf, now)
            raise

        if not fetched:
            logger.warning(f"[Cache] No data received for {symbol} {tf.value} - rate limited or no data available")
            until = await self._write_placeholder(symbol, tf, now)
            raise RateLimited(until, "Rate limited - please try again later")

        bars, _ = merge_bars([], fetched, self._max_bars)
        record = CacheRecord.fresh(bars, fetched_at=now)
        await self._store.write(symbol, tf, record)
        logger.info(f"[Cache] Cached {len(bars)} bars for {symbol} {tf.value} (first-time fetch)")
        return record

    async def _delta_refresh(
        self,
        symbol: str,
        tf: Timeframe,
        record: CacheRecord,
        now: datetime,
    ) -> CacheRecord:
        last_bar_date = record.meta.last_bar_date
        start = next_day(last_bar_date) if last_bar_date else None

        try:
            delta = await self._fetch(symbol, tf, start)
        except Exception as e:
            # Stale-but-available beats failing the request
            logger.warning(format_api_error_message(
                "Cache", symbol=symbol, timeframe=tf.value, error=e,
                additional_info=f"delta fetch failed, using cached data ({len(record.bars)} bars)",
            ))
            return record

        if not delta:
            logger.info(f"[Cache] No new bars for {symbol} {tf.value} since {last_bar_date}")
            return record

        merged, added = merge_bars(record.bars, delta, self._max_bars)
        meta = CacheMeta(
            last_fetch_at=now.isoformat(),
            last_bar_date=merged[-1].time if merged else last_bar_date,
        )
        updated = CacheRecord(meta=meta, bars=merged)
        await self._store.write(symbol, tf, updated)
        logger.info(f"[Cache] Added {added} new bars for {symbol} {tf.value} (delta update)")
        return updated

    async def _fetch(self, symbol: str, tf: Timeframe, since: Optional[date]) -> List[Bar]:
        if tf is Timeframe.FOUR_HOUR:
            return await self._source.fetch_intraday(symbol.upper(), since)
        return await self._source.fetch_daily(symbol.upper(), since)

    async def _write_placeholder(self, symbol: str, tf: Timeframe, now: datetime) -> datetime:
        until = now + self._rate_limit_backoff
        await self._store.write(symbol, tf, CacheRecord.rate_limited(fetched_at=now, until=until))
        logger.info(f"[Cache] Created placeholder cache for {symbol} {tf.value} - will retry after {until.isoformat()}")
        return until


def _deadline(meta: CacheMeta) -> Optional[datetime]:
    try:
        return meta.rate_limit_deadline()
    except ValueError:
        logger.warning(f"[Cache] Unreadable rate_limited_until {meta.rate_limited_until!r}; treating as expired")
        return None
