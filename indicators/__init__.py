"""Technical indicators."""
from .rsi import RSI
from .moving_average import ema, vwap, sma_smooth
from .heikin_ashi import to_heikin_ashi

__all__ = ["RSI", "ema", "vwap", "sma_smooth", "to_heikin_ashi"]
