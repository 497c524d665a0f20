from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from eodwatch.models.bar import Bar


class BarSource(ABC):
    """
    Upstream price provider as seen by the cache.

    Both methods return bars on/after ``since`` (full available history when
    ``since`` is None). A rate-limited upstream yields an empty list; any
    other failure raises UpstreamError.
    """

    @abstractmethod
    async def fetch_daily(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        ...

    @abstractmethod
    async def fetch_intraday(self, symbol: str, since: Optional[date] = None) -> List[Bar]:
        ...

    async def aclose(self) -> None:
        """Release network resources; no-op by default."""
