"""Base market data provider interface."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bar:
    """OHLCV bar data."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class MarketDataProvider(ABC):
    """Abstract base class for market data providers."""

    # Seconds between polls for providers without a push stream
    poll_interval_seconds: float = 2.0

    @abstractmethod
    def get_historical_bars(
        self,
        symbol: str,
        interval: str,
        count: int = 500
    ) -> List[Bar]:
        """
        Fetch historical bar data.

        Args:
            symbol: Trading symbol (e.g., "XRPUSD")
            interval: Time interval (e.g., "1m", "1d")
            count: Number of bars to fetch

        Returns:
            List of Bar objects, sorted by timestamp (oldest first).
            Empty on transport failure.
        """
        pass

    @abstractmethod
    def get_latest_bar(
        self,
        symbol: str,
        interval: str
    ) -> Optional[Bar]:
        """
        Fetch the latest (possibly in-progress) bar for a symbol.

        Returns:
            Latest Bar or None if unavailable
        """
        pass

    async def stream_bars(self, symbol: str, interval: str) -> AsyncIterator[Bar]:
        """
        Yield live bar updates.

        The default implementation polls ``get_latest_bar`` in the default
        executor. Push-based providers override this.
        """
        loop = asyncio.get_running_loop()
        while True:
            bar = await loop.run_in_executor(None, self.get_latest_bar, symbol, interval)
            if bar is not None:
                yield bar
            await asyncio.sleep(self.poll_interval_seconds)
