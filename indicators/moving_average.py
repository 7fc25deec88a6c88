"""EMA, VWAP and SMA smoothing over bar sequences.

Series are lists of ``(timestamp, value)`` points aligned with the input bars.
"""
from datetime import datetime
from typing import List, Tuple
from providers.base import Bar

SeriesPoint = Tuple[datetime, float]


def ema(bars: List[Bar], period: int) -> List[SeriesPoint]:
    """EMA of closes, seeded with the first close."""
    if not bars or period <= 0:
        return []
    k = 2 / (period + 1)
    prev = bars[0].close
    out = [(bars[0].timestamp, prev)]
    for bar in bars[1:]:
        prev = bar.close * k + prev * (1 - k)
        out.append((bar.timestamp, prev))
    return out


def vwap(bars: List[Bar]) -> List[SeriesPoint]:
    """Cumulative VWAP of the typical price (H+L+C)/3."""
    out = []
    cum_pv = 0.0
    cum_vol = 0.0
    for bar in bars:
        typical = (bar.high + bar.low + bar.close) / 3
        volume = bar.volume or 0.0
        cum_pv += typical * volume
        cum_vol += volume
        out.append((bar.timestamp, cum_pv / cum_vol if cum_vol > 0 else typical))
    return out


def sma_smooth(series: List[SeriesPoint], window: int) -> List[SeriesPoint]:
    """
    Simple moving average over a series.

    A window of 1 returns a copy. The first ``window - 1`` points pass through
    unchanged.
    """
    w = max(1, int(window))
    if w <= 1:
        return list(series)
    out = []
    total = 0.0
    for i, (timestamp, value) in enumerate(series):
        total += value
        if i >= w:
            total -= series[i - w][1]
        if i >= w - 1:
            out.append((timestamp, total / w))
        else:
            out.append((timestamp, value))
    return out
