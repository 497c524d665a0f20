from __future__ import annotations
from pathlib import Path
from typing import List, Tuple
import asyncio
import json
import logging
import re

from eodwatch.models.bar import Timeframe
from eodwatch.models.cache_record import CacheRecord
from eodwatch.utils.error_handling import InvalidSymbol, StorageError

logger = logging.getLogger(__name__)

MAX_SYMBOL_LENGTH = 10
_DISALLOWED_SYMBOL_CHARS = re.compile(r"[^A-Z0-9.\-]")


def sanitize_symbol(symbol: str) -> str:
    """
    Uppercase the symbol and strip everything outside ``[A-Z0-9.-]``.

    Raises:
        InvalidSymbol: If nothing survives or the result exceeds 10 characters
    """
    safe_symbol = _DISALLOWED_SYMBOL_CHARS.sub("", (symbol or "").upper())
    if not safe_symbol or len(safe_symbol) > MAX_SYMBOL_LENGTH:
        raise InvalidSymbol(symbol)
    return safe_symbol


class CacheStore:
    """
    File-based cache of one JSON document per (symbol, timeframe).

    A document holds ``{"meta": ..., "bars": [...]}`` and is always read and
    written as a whole.
    """

    def __init__(self, cache_dir: str | Path = "cache"):
        """
        Initialize the cache store.

        Args:
            cache_dir: Directory to store cache files (default: "cache")
        """
        self._cache_dir = Path(cache_dir)
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"CacheStore initialized with cache directory: {self._cache_dir}")

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def cache_path(self, symbol: str, timeframe: Timeframe | str) -> Path:
        """
        Get the cache file path for a symbol and timeframe.

        Symbols that sanitize to the same string share a file.

        Raises:
            InvalidSymbol: If the symbol does not sanitize to 1-10 allowed characters
        """
        safe_symbol = sanitize_symbol(symbol)
        tag = Timeframe.parse(timeframe).value
        return self._cache_dir / f"{safe_symbol}_{tag}.json"

    async def read(self, symbol: str, timeframe: Timeframe | str) -> CacheRecord:
        """
        Load the record for a symbol/timeframe.

        A missing or unreadable file is a cache miss: the empty record is
        returned and nothing is raised.
        """
        cache_path = self.cache_path(symbol, timeframe)
        if not cache_path.exists():
            return CacheRecord.empty()

        def _read() -> CacheRecord:
            raw = cache_path.read_text(encoding="utf-8")
            return CacheRecord.from_dict(json.loads(raw))

        try:
            return await asyncio.to_thread(_read)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"Failed to load cache from {cache_path}: {e}. "
                "Treating as a cache miss."
            )
            return CacheRecord.empty()

    async def write(self, symbol: str, timeframe: Timeframe | str, record: CacheRecord) -> None:
        """
        Persist a record, replacing whatever was stored before.

        The document is written to a temporary sibling and renamed into place.

        Raises:
            StorageError: If the file cannot be written
        """
        cache_path = self.cache_path(symbol, timeframe)
        temp_path = cache_path.with_suffix(".json.tmp")
        payload = json.dumps(record.to_dict())

        def _write() -> None:
            temp_path.write_text(payload, encoding="utf-8")
            temp_path.replace(cache_path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to save cache to {cache_path}: {e}")
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove temp file {temp_path}")
            raise StorageError(f"Failed to write cache file {cache_path}: {e}") from e

        logger.debug(f"Saved {len(record.bars)} bars to cache: {cache_path}")

    def list_entries(self) -> List[Tuple[str, Timeframe]]:
        """(symbol, timeframe) pairs that currently have a cache file."""
        entries: List[Tuple[str, Timeframe]] = []
        for cache_file in sorted(self._cache_dir.glob("*.json")):
            # Filename: SYMBOL_TIMEFRAME.json
            parts = cache_file.stem.rsplit("_", 1)
            if len(parts) != 2:
                logger.debug(f"Skipping file with unexpected name: {cache_file.name}")
                continue
            try:
                entries.append((parts[0], Timeframe.parse(parts[1])))
            except ValueError:
                logger.debug(f"Skipping file with unknown timeframe: {cache_file.name}")
        return entries
