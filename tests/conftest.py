import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import pytest

from eodwatch.data.base import BarSource
from eodwatch.data.cache import CacheStore
from eodwatch.data.delta_cache import DeltaCacheManager
from eodwatch.models.bar import Bar


class FakeSource(BarSource):
    """
    Scripted upstream. Each queued item is either a list of bars or an
    exception to raise; every call is recorded.
    """

    def __init__(self, daily=None, intraday=None, delay: float = 0.0):
        self.daily = list(daily or [])
        self.intraday = list(intraday or [])
        self.delay = delay
        self.calls = []

    async def fetch_daily(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        self.calls.append(("daily", symbol, since))
        return await self._next(self.daily)

    async def fetch_intraday(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        self.calls.append(("intraday", symbol, since))
        return await self._next(self.intraday)

    async def _next(self, queue):
        if self.delay:
            await asyncio.sleep(self.delay)
        if not queue:
            raise AssertionError("unexpected upstream call")
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return list(result)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_bars(start: date, count: int, price: float = 100.0, volume: Optional[int] = 1000) -> List[Bar]:
    """``count`` consecutive calendar-day bars starting at ``start``."""
    bars = []
    for i in range(count):
        p = price + i
        bars.append(Bar(
            time=(start + timedelta(days=i)).isoformat(),
            open=p,
            high=p + 1,
            low=p - 1,
            close=p + 0.5,
            volume=volume,
        ))
    return bars


# Friday evening UTC
NOW = datetime(2024, 3, 8, 21, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path / "cache")


@pytest.fixture
def make_manager(store, clock):
    def _make(source: BarSource, **kwargs) -> DeltaCacheManager:
        return DeltaCacheManager(store=store, source=source, clock=clock, **kwargs)
    return _make
