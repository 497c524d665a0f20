from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Timeframe(str, Enum):
    """Bar granularities served by the cache. "1m" is monthly, not minutely."""

    DAILY = "1d"
    FOUR_HOUR = "4h"
    WEEKLY = "1w"
    MONTHLY = "1m"

    @classmethod
    def parse(cls, value: "str | Timeframe") -> "Timeframe":
        """
        Normalize a timeframe string from the outside world.

        Handles the case and synonym variations clients send:
        - "1D", "D", "day", "daily" -> 1d
        - "4H", "240", "4hour" -> 4h
        - "1W", "W", "week", "weekly" -> 1w
        - "1M", "M", "1mo", "month", "monthly" -> 1m

        Raises:
            ValueError: If the value is not a known timeframe
        """
        if isinstance(value, Timeframe):
            return value
        if not value or not str(value).strip():
            raise ValueError("Timeframe cannot be empty")

        key = str(value).strip().lower()
        timeframe = _SYNONYMS.get(key)
        if timeframe is None:
            raise ValueError(
                f"Unsupported timeframe '{value}'. "
                f"Supported: {', '.join(t.value for t in cls)}"
            )
        return timeframe

    @property
    def is_derived(self) -> bool:
        """Weekly and monthly bars are resampled from the daily series."""
        return self in (Timeframe.WEEKLY, Timeframe.MONTHLY)


_SYNONYMS = {
    "1d": Timeframe.DAILY,
    "d": Timeframe.DAILY,
    "day": Timeframe.DAILY,
    "daily": Timeframe.DAILY,
    "4h": Timeframe.FOUR_HOUR,
    "240": Timeframe.FOUR_HOUR,
    "4hour": Timeframe.FOUR_HOUR,
    "1w": Timeframe.WEEKLY,
    "w": Timeframe.WEEKLY,
    "week": Timeframe.WEEKLY,
    "weekly": Timeframe.WEEKLY,
    "1m": Timeframe.MONTHLY,
    "m": Timeframe.MONTHLY,
    "1mo": Timeframe.MONTHLY,
    "month": Timeframe.MONTHLY,
    "monthly": Timeframe.MONTHLY,
}


@dataclass
class Bar:
    time: str  # "YYYY-MM-DD" or ISO timestamp, sortable as a string
    open: float
    high: float
    low: float
    close: float
    volume: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bar":
        volume = data.get("volume")
        return cls(
            time=str(data["time"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=int(volume) if volume is not None else None,
        )
