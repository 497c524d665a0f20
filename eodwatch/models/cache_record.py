from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from eodwatch.models.bar import Bar
from eodwatch.utils.timestamp import parse_timestamp

RATE_LIMITED_STATUS = "rate_limited"


@dataclass
class CacheMeta:
    """Bookkeeping stored next to the bars of one symbol/timeframe."""
    last_fetch_at: str
    last_bar_date: Optional[str] = None
    rate_limited_until: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_rate_limited(self) -> bool:
        """Placeholder record; a missing deadline counts as already expired."""
        return self.status == RATE_LIMITED_STATUS

    def rate_limit_deadline(self) -> Optional[datetime]:
        if not self.rate_limited_until:
            return None
        return parse_timestamp(self.rate_limited_until)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "last_fetch_at": self.last_fetch_at,
            "last_bar_date": self.last_bar_date,
        }
        if self.rate_limited_until is not None:
            data["rate_limited_until"] = self.rate_limited_until
        if self.status is not None:
            data["status"] = self.status
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMeta":
        return cls(
            last_fetch_at=str(data.get("last_fetch_at") or ""),
            last_bar_date=data.get("last_bar_date"),
            rate_limited_until=data.get("rate_limited_until"),
            status=data.get("status"),
        )


@dataclass
class CacheRecord:
    """
    Persisted state for one (symbol, timeframe) pair.

    ``meta`` is None until the first fetch. A rate-limited record carries no
    bars; it only marks when the upstream may be asked again.
    """
    meta: Optional[CacheMeta] = None
    bars: List[Bar] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "CacheRecord":
        return cls(meta=None, bars=[])

    @classmethod
    def fresh(cls, bars: List[Bar], fetched_at: datetime) -> "CacheRecord":
        meta = CacheMeta(
            last_fetch_at=fetched_at.isoformat(),
            last_bar_date=bars[-1].time if bars else None,
        )
        return cls(meta=meta, bars=list(bars))

    @classmethod
    def rate_limited(cls, fetched_at: datetime, until: datetime) -> "CacheRecord":
        meta = CacheMeta(
            last_fetch_at=fetched_at.isoformat(),
            last_bar_date=None,
            rate_limited_until=until.isoformat(),
            status=RATE_LIMITED_STATUS,
        )
        return cls(meta=meta, bars=[])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meta": self.meta.to_dict() if self.meta is not None else None,
            "bars": [b.to_dict() for b in self.bars],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheRecord":
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        raw_meta = data.get("meta")
        meta = CacheMeta.from_dict(raw_meta) if isinstance(raw_meta, dict) else None
        bars = [Bar.from_dict(b) for b in data.get("bars") or []]
        return cls(meta=meta, bars=bars)
