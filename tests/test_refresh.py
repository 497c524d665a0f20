"""Tests for the batched watchlist refresh."""

import asyncio

import pytest

from eodwatch.data.refresh import REFRESH_PLAN, RefreshSummary, refresh_all, refresh_symbol
from eodwatch.models.bar import Timeframe
from eodwatch.utils.error_handling import RateLimited, UpstreamError
from eodwatch.utils.timestamp import utc_now


class RecordingManager:
    """Records get_bars calls; symbols in ``failures`` raise the mapped error."""

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    async def get_bars(self, symbol, days=600, timeframe=Timeframe.DAILY):
        self.calls.append((symbol, days, timeframe))
        if symbol in self.failures:
            raise self.failures[symbol]
        return None


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def test_refresh_symbol_warms_every_timeframe():
    manager = RecordingManager()

    assert asyncio.run(refresh_symbol(manager, "AAPL")) is True
    assert manager.calls == [("AAPL", days, tf) for tf, days in REFRESH_PLAN]
    assert [tf for _, _, tf in manager.calls] == [Timeframe.DAILY, Timeframe.WEEKLY, Timeframe.MONTHLY]


def test_refresh_symbol_reports_failure():
    manager = RecordingManager(failures={"AAPL": RateLimited(utc_now())})

    assert asyncio.run(refresh_symbol(manager, "AAPL")) is False
    assert len(manager.calls) == 1


def test_refresh_all_batches_and_sleeps_between_batches():
    manager = RecordingManager()
    sleep = RecordingSleep()
    symbols = ["S1", "S2", "S3", "S4", "S5", "S6", "S7"]

    summary = asyncio.run(refresh_all(manager, symbols, batch_size=3, batch_delay=2.5, sleep=sleep))

    assert isinstance(summary, RefreshSummary)
    assert summary.success_count == 7
    assert summary.error_count == 0
    assert summary.success_rate == 100.0
    # 3 batches -> 2 pauses, none after the last batch
    assert sleep.delays == [2.5, 2.5]
    assert {call[0] for call in manager.calls} == set(symbols)


def test_refresh_all_counts_errors_and_continues():
    manager = RecordingManager(failures={
        "BAD": UpstreamError("provider down"),
        "BOOM": RuntimeError("unexpected"),
    })
    sleep = RecordingSleep()

    summary = asyncio.run(refresh_all(manager, ["AAPL", "BAD", "BOOM", "MSFT"], batch_size=2, sleep=sleep))

    assert summary.success_count == 2
    assert summary.error_count == 2
    assert summary.success_rate == 50.0
    assert len(sleep.delays) == 1


def test_refresh_all_single_batch_does_not_sleep():
    sleep = RecordingSleep()

    summary = asyncio.run(refresh_all(RecordingManager(), ["AAPL"], sleep=sleep))

    assert summary.success_count == 1
    assert sleep.delays == []


def test_refresh_all_empty_watchlist():
    summary = asyncio.run(refresh_all(RecordingManager(), [], sleep=RecordingSleep()))

    assert summary.success_count == 0
    assert summary.success_rate == 0.0


def test_refresh_all_rejects_bad_batch_size():
    with pytest.raises(ValueError):
        asyncio.run(refresh_all(RecordingManager(), ["AAPL"], batch_size=0))
