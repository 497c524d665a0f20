"""Tests for daily -> weekly/monthly resampling."""

from eodwatch.data.resample import resample_monthly, resample_weekly
from eodwatch.models.bar import Bar


def _bar(time, o, h, l, c, v=None):
    return Bar(time=time, open=o, high=h, low=l, close=c, volume=v)


def test_weekly_aggregation():
    # Mon..Wed of the same ISO week
    bars = [
        _bar("2024-01-01", 10, 12, 9, 11, 100),
        _bar("2024-01-02", 11, 13, 8, 12, 200),
        _bar("2024-01-03", 12, 12.5, 7, 9.5, 150),
    ]

    result = resample_weekly(bars)

    assert result == [_bar("2024-01-01", 10, 13, 7, 9.5, 450)]


def test_weekly_buckets_by_monday():
    bars = [
        _bar("2024-01-05", 1, 1, 1, 1, 1),   # Fri -> 2024-01-01
        _bar("2024-01-07", 2, 2, 2, 2, 1),   # Sun -> 2024-01-01
        _bar("2024-01-08", 3, 3, 3, 3, 1),   # Mon -> 2024-01-08
    ]

    result = resample_weekly(bars)

    assert [b.time for b in result] == ["2024-01-01", "2024-01-08"]
    assert result[0].open == 1
    assert result[0].close == 2
    assert result[0].volume == 2


def test_weekly_handles_iso_timestamps():
    bars = [
        _bar("2024-01-03T00:00:00.000Z", 1, 2, 0.5, 1.5, 10),
        _bar("2024-01-04T00:00:00.000Z", 1.5, 3, 1, 2.5, 20),
    ]

    result = resample_weekly(bars)

    assert result == [_bar("2024-01-01", 1, 3, 0.5, 2.5, 30)]


def test_weekly_across_year_boundary():
    bars = [
        _bar("2024-12-30", 1, 1, 1, 1, 1),
        _bar("2025-01-02", 2, 2, 2, 2, 1),
    ]

    result = resample_weekly(bars)

    assert [b.time for b in result] == ["2024-12-30"]


def test_monthly_aggregation():
    bars = [
        _bar("2024-01-30", 10, 11, 9, 10.5, 100),
        _bar("2024-01-31", 10.5, 12, 10, 11, 100),
        _bar("2024-02-01", 11, 11.5, 8, 9, 50),
        _bar("2024-02-29", 9, 10, 8.5, 9.5, 50),
    ]

    result = resample_monthly(bars)

    assert result == [
        _bar("2024-01-01", 10, 12, 9, 11, 200),
        _bar("2024-02-01", 11, 11.5, 8, 9.5, 100),
    ]


def test_missing_volume_counts_as_zero():
    bars = [
        _bar("2024-01-01", 1, 1, 1, 1, None),
        _bar("2024-01-02", 1, 1, 1, 1, 5),
    ]

    assert resample_weekly(bars)[0].volume == 5
    assert resample_monthly([_bar("2024-01-01", 1, 1, 1, 1, None)])[0].volume == 0


def test_resampling_is_idempotent():
    bars = [_bar(f"2024-01-{day:02d}", day, day + 1, day - 1, day + 0.5, 10) for day in range(1, 29)]

    weekly = resample_weekly(bars)
    monthly = resample_monthly(bars)

    assert resample_weekly(weekly) == weekly
    assert resample_monthly(monthly) == monthly


def test_output_is_sorted_and_unique():
    bars = [_bar(f"2024-{month:02d}-15", month, month, month, month, 1) for month in range(1, 13)]

    result = resample_monthly(bars)

    times = [b.time for b in result]
    assert times == sorted(set(times))
    assert len(result) == 12


def test_empty_input():
    assert resample_weekly([]) == []
    assert resample_monthly([]) == []
