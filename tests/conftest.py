import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from config import ChartConfig
from dashboard.store import DashboardStore
from levels.surface import HeadlessChart
from providers.base import Bar, MarketDataProvider

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_bar(i: int, close: float, high: Optional[float] = None, low: Optional[float] = None,
             open_: Optional[float] = None, volume: float = 1000.0) -> Bar:
    """Bar ``i`` minutes after START."""
    open_ = close if open_ is None else open_
    return Bar(
        timestamp=START + timedelta(minutes=i),
        open=open_,
        high=max(open_, close) if high is None else high,
        low=min(open_, close) if low is None else low,
        close=close,
        volume=volume
    )


def make_bars(closes: List[float]) -> List[Bar]:
    return [make_bar(i, c) for i, c in enumerate(closes)]


class FakeProvider(MarketDataProvider):
    """Serves canned bars; live bars are pushed through an asyncio queue."""

    poll_interval_seconds = 0.01

    def __init__(self, bars: Optional[List[Bar]] = None):
        self.bars = list(bars or [])
        self.history_calls = []

    def get_historical_bars(self, symbol, interval, count=500):
        self.history_calls.append((symbol, interval, count))
        return list(self.bars[-count:])

    def get_latest_bar(self, symbol, interval):
        return None


@pytest.fixture
def bar_factory():
    """Build bars from closes."""
    return make_bars


@pytest.fixture
def store():
    return DashboardStore()


@pytest.fixture
def chart():
    """Headless chart scaled so that y = 500 - price (price 100..500 over 400px)."""
    surface = HeadlessChart(width=800, height=400)
    surface.price_scale.set_range(500.0, 100.0)
    return surface


@pytest.fixture
def chart_config():
    return ChartConfig()


@pytest.fixture
def fake_provider(bar_factory):
    return FakeProvider(bar_factory([100 + (i % 7) for i in range(30)]))
