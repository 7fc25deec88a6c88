"""Market data providers."""
from .base import MarketDataProvider, Bar
from .buffer import BarBuffer
from .binance import BinanceProvider
from .mock import MockProvider

__all__ = ["MarketDataProvider", "Bar", "BarBuffer", "BinanceProvider", "MockProvider"]
