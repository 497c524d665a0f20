"""
Daily -> weekly/monthly resampling.

Both variants share one aggregation: open of the first bar in the bucket,
max high, min low, close of the last bar, summed volume (missing volume
counts as 0). The output is one bar per bucket, keyed by the bucket's
start date and sorted ascending.

Input bars must be in non-decreasing time order; "first" and "last" follow
input order within a bucket.
"""

from __future__ import annotations
from typing import Callable, List

import pandas as pd

from eodwatch.models.bar import Bar


def _week_start(dates: pd.Series) -> pd.Series:
    # Monday of the ISO week
    return dates - pd.to_timedelta(dates.dt.weekday, unit="D")


def _month_start(dates: pd.Series) -> pd.Series:
    return dates - pd.to_timedelta(dates.dt.day - 1, unit="D")


def _resample(bars: List[Bar], bucket_start: Callable[[pd.Series], pd.Series]) -> List[Bar]:
    if not bars:
        return []

    df = pd.DataFrame([b.to_dict() for b in bars])
    dates = pd.to_datetime(df["time"].str.slice(0, 10), format="%Y-%m-%d")
    df["bucket"] = bucket_start(dates).dt.strftime("%Y-%m-%d")
    df["volume"] = pd.to_numeric(df["volume"], errors="coerce").fillna(0)

    grouped = df.groupby("bucket", sort=True).agg(
        open=("open", "first"),
        high=("high", "max"),
        low=("low", "min"),
        close=("close", "last"),
        volume=("volume", "sum"),
    )

    return [
        Bar(
            time=str(row.Index),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=int(row.volume),
        )
        for row in grouped.itertuples()
    ]


def resample_weekly(bars: List[Bar]) -> List[Bar]:
    """Aggregate daily bars into weeks keyed by the week's Monday."""
    return _resample(bars, _week_start)


def resample_monthly(bars: List[Bar]) -> List[Bar]:
    """Aggregate daily bars into months keyed by the first day of the month."""
    return _resample(bars, _month_start)
