"""Heikin-Ashi candle transform."""
from typing import List
from providers.base import Bar


def to_heikin_ashi(bars: List[Bar]) -> List[Bar]:
    """Return synthetic Heikin-Ashi bars; timestamps and volume are kept."""
    out: List[Bar] = []
    for bar in bars:
        close = (bar.open + bar.high + bar.low + bar.close) / 4
        if out:
            prev = out[-1]
            open_ = (prev.open + prev.close) / 2
        else:
            open_ = (bar.open + bar.close) / 2
        out.append(Bar(
            timestamp=bar.timestamp,
            open=open_,
            high=max(bar.high, open_, close),
            low=min(bar.low, open_, close),
            close=close,
            volume=bar.volume
        ))
    return out
