"""
Market data endpoints.

- /api/data: bars for any supported timeframe, in the chart frontend's shape
- /eod: legacy daily endpoint with unix-second timestamps
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import List, Optional
import logging

from backend.backend_core.config import settings
from backend.backend_core.dependencies import get_cache_manager
from eodwatch.data.delta_cache import DeltaCacheManager
from eodwatch.models.bar import Timeframe
from eodwatch.utils.timestamp import to_unix_seconds

router = APIRouter()
logger = logging.getLogger(__name__)


class DataPoint(BaseModel):
    """One bar as the chart frontend expects it."""
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


class EodPoint(BaseModel):
    time: int  # unix seconds
    open: float
    high: float
    low: float
    close: float


class EodResponse(BaseModel):
    symbol: str
    data: List[EodPoint]


def _parse_timeframe(value: str) -> Timeframe:
    try:
        return Timeframe.parse(value)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "invalid_timeframe", "message": str(e)},
        )


@router.get("/api/data", response_model=List[DataPoint])
async def get_data(
    symbol: str = Query("AAPL"),
    timeframe: str = Query("1D"),
    days: int = Query(4000),
    manager: DeltaCacheManager = Depends(get_cache_manager),
):
    """Bars for a symbol; timeframe is one of 1D, 4H, 1W, 1M (case-insensitive)."""
    symbol = symbol.upper()
    tf = _parse_timeframe(timeframe)
    days = min(days, settings.MAX_DAYS)

    result = await manager.get_bars(symbol, days, tf)

    data = [
        DataPoint(
            date=bar.time,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume or 0,
        )
        for bar in result.data
    ]
    logger.info(f"✅ Served {len(data)} bars for {symbol} {tf.value}")
    return data


@router.get("/eod", response_model=EodResponse)
async def get_eod(
    symbol: str = Query("AAPL"),
    days: int = Query(600),
    manager: DeltaCacheManager = Depends(get_cache_manager),
):
    """Legacy end-of-day endpoint (always daily bars)."""
    symbol = symbol.upper()
    days = min(days, settings.EOD_MAX_DAYS)

    result = await manager.get_bars(symbol, days, Timeframe.DAILY)

    return EodResponse(
        symbol=symbol,
        data=[
            EodPoint(
                time=to_unix_seconds(bar.time),
                open=bar.open,
                high=bar.high,
                low=bar.low,
                close=bar.close,
            )
            for bar in result.data
        ],
    )
