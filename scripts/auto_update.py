"""
Auto-update for EOD Watch: refresh cached bars for a watchlist so users get
cache hits when switching symbols.

Runs after the US close (7pm ET) from cron:
    0 19 * * * cd /path/to/eod-watch && python scripts/auto_update.py

Usage:
    python scripts/auto_update.py                    # Update default watchlist
    python scripts/auto_update.py AAPL META TSLA     # Update specific symbols
    python scripts/auto_update.py --test             # Quick test with 3 symbols
    python scripts/auto_update.py --config config/env.yaml
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from eodwatch.data.factory import create_delta_cache_manager_from_config
from eodwatch.data.refresh import (
    BATCH_DELAY_SECONDS,
    BATCH_SIZE,
    DEFAULT_WATCHLIST,
    TEST_WATCHLIST,
    RefreshSummary,
    refresh_all,
)
from eodwatch.utils.config_loader import load_config_with_secrets, load_secrets, merge_secrets_into_config

logger = logging.getLogger("auto_update")


def load_config(config_file: Optional[Path]) -> dict:
    """Config file plus secrets; TIINGO_TOKEN from the environment wins."""
    if config_file is not None and config_file.exists():
        config = load_config_with_secrets(config_file)
    else:
        config = merge_secrets_into_config({}, load_secrets(project_root / "config"))

    token = os.getenv("TIINGO_TOKEN")
    if token:
        config["tiingo"] = {**(config.get("tiingo") or {}), "api_token": token}
    return config


async def run(symbols: List[str], config: dict) -> RefreshSummary:
    refresh_config = config.get("refresh") or {}
    manager = create_delta_cache_manager_from_config(config)
    try:
        return await refresh_all(
            manager,
            symbols,
            batch_size=int(refresh_config.get("batch_size", BATCH_SIZE)),
            batch_delay=float(refresh_config.get("batch_delay_seconds", BATCH_DELAY_SECONDS)),
        )
    finally:
        await manager.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Refresh cached bars for a watchlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/auto_update.py                  # Full update (default watchlist)
  python scripts/auto_update.py --test           # Quick test (3 symbols)
  python scripts/auto_update.py AAPL GOOGL TSLA  # Custom symbols
        """
    )
    parser.add_argument("symbols", nargs="*", help="Symbols to refresh (default: watchlist)")
    parser.add_argument("--test", action="store_true", help="Refresh only AAPL, META and TSLA")
    parser.add_argument(
        "--config",
        type=Path,
        default=project_root / "config" / "env.yaml",
        help="Config file (default: config/env.yaml)",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    config = load_config(args.config)
    if args.test:
        symbols = TEST_WATCHLIST
        logger.info("🧪 Running in TEST mode with 3 symbols only")
    elif args.symbols:
        symbols = [s.upper() for s in args.symbols]
        logger.info(f"🎯 Custom symbol list: {', '.join(symbols)}")
    else:
        symbols = (config.get("refresh") or {}).get("symbols") or DEFAULT_WATCHLIST

    try:
        summary = asyncio.run(run(symbols, config))
    except ValueError as e:
        logger.error(f"💥 Auto-update failed: {e}")
        return 1

    logger.info(f"📊 Success rate: {summary.success_rate:.1f}% | Total time: {summary.duration}s")
    return 1 if summary.error_count > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
