"""
Simple script to inspect cache contents.

This script shows what data is currently cached, including:
- Which symbols and timeframes are cached
- Date range and number of bars in each cache file
- Rate-limit placeholders and when they expire

Usage:
    python scripts/inspect_cache.py
    python scripts/inspect_cache.py --symbol AAPL --timeframe 1D
    python scripts/inspect_cache.py --cache-dir cache
"""

import asyncio
import argparse
import sys
from pathlib import Path
from typing import Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from eodwatch.data.cache import CacheStore
from eodwatch.models.bar import Timeframe


async def inspect_cache(
    cache_dir: str = "cache",
    symbol: Optional[str] = None,
    timeframe: Optional[str] = None,
    sample: int = 5,
) -> None:
    """
    Inspect cache contents.

    Args:
        cache_dir: Directory containing cache files
        symbol: Optional symbol to filter by (e.g., "AAPL")
        timeframe: Optional timeframe to filter by (e.g., "1D")
        sample: Number of newest bars to print per file
    """
    if not Path(cache_dir).exists():
        print(f"❌ Cache directory does not exist: {cache_dir}")
        return

    store = CacheStore(cache_dir)
    wanted_tf = Timeframe.parse(timeframe) if timeframe else None

    print("=" * 80)
    print("Cache Inspection")
    print("=" * 80)
    print(f"Cache directory: {cache_dir}\n")

    entries = [
        (file_symbol, file_tf)
        for file_symbol, file_tf in store.list_entries()
        if (not symbol or file_symbol == symbol.upper()) and (wanted_tf is None or file_tf is wanted_tf)
    ]
    if not entries:
        print("No matching cache files found.")
        return

    total_bars = 0
    total_size = 0
    for i, (file_symbol, file_tf) in enumerate(entries, 1):
        path = store.cache_path(file_symbol, file_tf)
        record = await store.read(file_symbol, file_tf)
        total_bars += len(record.bars)
        total_size += path.stat().st_size

        print(f"{i}. {file_symbol} ({file_tf.value})")
        print(f"   File: {path.name}")
        if record.meta is None:
            print("   Meta: none (unreadable or never fetched)")
        elif record.meta.is_rate_limited:
            print(f"   ⏳ Rate limited until {record.meta.rate_limited_until}")
        else:
            print(f"   Last fetch: {record.meta.last_fetch_at}")
            print(f"   Last bar:   {record.meta.last_bar_date}")
        print(f"   Bars: {len(record.bars):,}")
        if record.bars:
            print(f"   Range: {record.bars[0].time} to {record.bars[-1].time}")
            for bar in record.bars[-sample:]:
                volume = f"{bar.volume:,}" if bar.volume is not None else "n/a"
                print(f"     - {bar.time}: O={bar.open:.2f}, H={bar.high:.2f}, "
                      f"L={bar.low:.2f}, C={bar.close:.2f}, V={volume}")
        print()

    print("=" * 80)
    print("Summary")
    print("=" * 80)
    print(f"Total cache files: {len(entries)}")
    print(f"Total bars cached: {total_bars:,}")
    print(f"Total cache size: {total_size / 1024 / 1024:.2f} MB")
    print("=" * 80)


def main():
    parser = argparse.ArgumentParser(
        description="Inspect cache contents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show all cached data
  python scripts/inspect_cache.py

  # Show only AAPL daily bars
  python scripts/inspect_cache.py --symbol AAPL --timeframe 1D
        """
    )
    parser.add_argument("--cache-dir", type=str, default="cache", help="Cache directory path (default: cache)")
    parser.add_argument("--symbol", type=str, default=None, help="Filter by symbol (e.g., AAPL)")
    parser.add_argument("--timeframe", type=str, default=None, help="Filter by timeframe (1D or 4H)")
    parser.add_argument("--sample", type=int, default=5, help="Newest bars to show per file (default: 5)")

    args = parser.parse_args()

    asyncio.run(inspect_cache(
        cache_dir=args.cache_dir,
        symbol=args.symbol,
        timeframe=args.timeframe,
        sample=args.sample,
    ))


if __name__ == "__main__":
    main()
