"""Tests for the JSON cache store."""

import asyncio
import json

import pytest

from eodwatch.data.cache import CacheStore, sanitize_symbol
from eodwatch.models.bar import Bar, Timeframe
from eodwatch.models.cache_record import CacheMeta, CacheRecord
from eodwatch.utils.error_handling import InvalidSymbol, StorageError

from conftest import NOW, make_bars, TODAY


def test_cache_path_is_deterministic(store):
    first = store.cache_path("aapl", "1D")
    second = store.cache_path("AAPL", Timeframe.DAILY)
    assert first == second
    assert first.name == "AAPL_1d.json"
    assert first.parent == store.cache_dir


def test_cache_path_per_timeframe(store):
    names = {store.cache_path("SPY", tf).name for tf in Timeframe}
    assert names == {"SPY_1d.json", "SPY_4h.json", "SPY_1w.json", "SPY_1m.json"}


def test_sanitize_keeps_allowed_characters():
    assert sanitize_symbol("brk.b") == "BRK.B"
    assert sanitize_symbol("BF-B") == "BF-B"
    assert sanitize_symbol("a$a p l") == "AAPL"


def test_sanitized_collisions_share_a_file(store):
    assert store.cache_path("AA PL", "1d") == store.cache_path("AAPL", "1d")


@pytest.mark.parametrize("symbol", ["", "$$$", "/", "ABCDEFGHIJK", "../etc/passwd"])
def test_invalid_symbols_rejected(store, symbol):
    with pytest.raises(InvalidSymbol):
        store.cache_path(symbol, "1d")


def test_traversal_characters_are_stripped(store):
    path = store.cache_path("../x", "1d")
    assert path.parent == store.cache_dir
    assert path.name == "..X_1d.json"


def test_read_missing_is_empty(store):
    record = asyncio.run(store.read("AAPL", "1d"))
    assert record.meta is None
    assert record.bars == []


def test_read_corrupt_file_is_cache_miss(store):
    store.cache_path("AAPL", "1d").write_text("{not json", encoding="utf-8")
    record = asyncio.run(store.read("AAPL", "1d"))
    assert record.meta is None
    assert record.bars == []


def test_read_wrong_shape_is_cache_miss(store):
    store.cache_path("AAPL", "1d").write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    record = asyncio.run(store.read("AAPL", "1d"))
    assert record.meta is None


def test_write_then_read(store):
    bars = make_bars(TODAY, 3)
    asyncio.run(store.write("AAPL", "1d", CacheRecord.fresh(bars, fetched_at=NOW)))

    record = asyncio.run(store.read("aapl", "1d"))
    assert record.bars == bars
    assert record.meta.last_bar_date == bars[-1].time
    assert record.meta.last_fetch_at == NOW.isoformat()
    assert not store.cache_path("AAPL", "1d").with_suffix(".json.tmp").exists()


def test_serialized_layout(store):
    bar = Bar(time="2024-03-08", open=1.0, high=2.0, low=0.5, close=1.5, volume=None)
    asyncio.run(store.write("AAPL", "1d", CacheRecord.fresh([bar], fetched_at=NOW)))

    raw = json.loads(store.cache_path("AAPL", "1d").read_text(encoding="utf-8"))
    assert raw["meta"] == {"last_fetch_at": NOW.isoformat(), "last_bar_date": "2024-03-08"}
    assert raw["bars"] == [
        {"time": "2024-03-08", "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5, "volume": None}
    ]


def test_reads_javascript_style_placeholder(store):
    store.cache_path("AAPL", "1d").write_text(json.dumps({
        "meta": {
            "last_fetch_at": "2024-03-08T21:00:00.000Z",
            "last_bar_date": None,
            "rate_limited_until": "2024-03-08T21:15:00.000Z",
            "status": "rate_limited",
        },
        "bars": [],
    }), encoding="utf-8")

    record = asyncio.run(store.read("AAPL", "1d"))
    assert record.meta.is_rate_limited
    assert record.meta.rate_limit_deadline().minute == 15


def test_write_failure_raises_storage_error(store):
    # A directory squatting on the temp file name makes the write fail
    store.cache_path("AAPL", "1d").with_suffix(".json.tmp").mkdir()

    with pytest.raises(StorageError):
        asyncio.run(store.write("AAPL", "1d", CacheRecord.fresh(make_bars(TODAY, 1), fetched_at=NOW)))


def test_list_entries(store):
    asyncio.run(store.write("AAPL", "1d", CacheRecord.fresh(make_bars(TODAY, 1), fetched_at=NOW)))
    asyncio.run(store.write("BRK.B", "4h", CacheRecord.fresh(make_bars(TODAY, 1), fetched_at=NOW)))
    (store.cache_dir / "notes.json").write_text("{}", encoding="utf-8")

    assert store.list_entries() == [("AAPL", Timeframe.DAILY), ("BRK.B", Timeframe.FOUR_HOUR)]


def test_creates_cache_dir(tmp_path):
    target = tmp_path / "nested" / "cache"
    CacheStore(target)
    assert target.is_dir()


def test_placeholder_without_deadline_is_still_rate_limited():
    meta = CacheMeta(last_fetch_at=NOW.isoformat(), status="rate_limited")
    assert meta.is_rate_limited
    assert meta.rate_limit_deadline() is None
    assert not CacheMeta(last_fetch_at=NOW.isoformat(), last_bar_date="2024-03-08").is_rate_limited
