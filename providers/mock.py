"""Mock market data provider for testing and offline runs."""
import random
from typing import Dict, List, Optional
from datetime import datetime, timedelta, timezone
from .base import MarketDataProvider, Bar

INTERVAL_SECONDS = {"1m": 60, "5m": 300, "1h": 3600, "1d": 86400}


class MockProvider(MarketDataProvider):
    """Mock market data provider that generates a random-walk price series."""

    poll_interval_seconds = 1.0

    def __init__(self, base_price: float = 0.5, seed: Optional[int] = None):
        """
        Initialize mock provider.

        Args:
            base_price: Base price to simulate around
            seed: Optional seed for reproducible series
        """
        self.base_price = base_price
        self.random = random.Random(seed)
        self._last_bar: Dict[tuple, Bar] = {}

    def get_historical_bars(
        self,
        symbol: str,
        interval: str,
        count: int = 500
    ) -> List[Bar]:
        """Generate mock historical bars ending at the current bucket."""
        step = INTERVAL_SECONDS.get(interval, 60)
        end = self._bucket_start(datetime.now(timezone.utc), step)

        bars = []
        price = self.base_price
        for i in range(count):
            timestamp = end - timedelta(seconds=step * (count - i - 1))
            bar = self._next_bar(timestamp, price, 0.01)
            bars.append(bar)
            price = bar.close

        if bars:
            self._last_bar[(symbol, interval)] = bars[-1]
        return bars

    def get_latest_bar(
        self,
        symbol: str,
        interval: str
    ) -> Optional[Bar]:
        """Advance the in-progress bar, rolling over into a new bucket when due."""
        step = INTERVAL_SECONDS.get(interval, 60)
        bucket = self._bucket_start(datetime.now(timezone.utc), step)
        last = self._last_bar.get((symbol, interval))

        if last is None or bucket > last.timestamp:
            open_price = last.close if last else self.base_price
            bar = self._next_bar(bucket, open_price, 0.002)
        else:
            close = round(last.close * (1 + self.random.uniform(-0.002, 0.002)), 6)
            bar = Bar(
                timestamp=last.timestamp,
                open=last.open,
                high=max(last.high, close),
                low=min(last.low, close),
                close=close,
                volume=last.volume + self.random.randint(1000, 50000)
            )

        self._last_bar[(symbol, interval)] = bar
        return bar

    def _next_bar(self, timestamp: datetime, open_price: float, volatility: float) -> Bar:
        close = open_price * (1 + self.random.uniform(-volatility, volatility))
        high = max(open_price, close) * self.random.uniform(1.0, 1.0 + volatility / 2)
        low = min(open_price, close) * self.random.uniform(1.0 - volatility / 2, 1.0)
        return Bar(
            timestamp=timestamp,
            open=round(open_price, 6),
            high=round(high, 6),
            low=round(low, 6),
            close=round(close, 6),
            volume=float(self.random.randint(100000, 10000000))
        )

    @staticmethod
    def _bucket_start(now: datetime, step: int) -> datetime:
        epoch = int(now.timestamp())
        return datetime.fromtimestamp(epoch - epoch % step, tz=timezone.utc)
