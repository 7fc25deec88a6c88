"""Chart surface interface used by the line interaction controller.

The drawing backend is out of scope; a chart only needs to map prices to
pixels and manage horizontal price lines. ``HeadlessChart`` keeps everything
in memory and is what the engine runs against when no UI is attached.
"""
from abc import ABC, abstractmethod
from itertools import count
from typing import Dict, Optional


class PriceScaleNotReady(Exception):
    """The price scale cannot map coordinates yet (no data or no size)."""


class PriceScale(ABC):
    """Price <-> y pixel mapping of the chart's right price scale."""

    @abstractmethod
    def price_to_coordinate(self, price: float) -> float:
        pass

    @abstractmethod
    def coordinate_to_price(self, y: float) -> float:
        pass


class LinearPriceScale(PriceScale):
    """Linear scale with ``top_price`` at y=0 and ``bottom_price`` at y=height."""

    def __init__(self, height: float = 0.0, top_price: Optional[float] = None,
                 bottom_price: Optional[float] = None):
        self.height = height
        self.top_price = top_price
        self.bottom_price = bottom_price

    def set_range(self, top_price: float, bottom_price: float):
        self.top_price = top_price
        self.bottom_price = bottom_price

    def _span(self) -> float:
        if self.height <= 0 or self.top_price is None or self.bottom_price is None:
            raise PriceScaleNotReady("price scale has no size or range")
        span = self.top_price - self.bottom_price
        if span == 0:
            raise PriceScaleNotReady("price scale range is empty")
        return span

    def price_to_coordinate(self, price: float) -> float:
        span = self._span()
        return (self.top_price - price) / span * self.height

    def coordinate_to_price(self, y: float) -> float:
        span = self._span()
        return self.top_price - (y / self.height) * span


class ChartSurface(ABC):
    """What the controller needs from a rendered chart."""

    width: float = 0.0

    @property
    @abstractmethod
    def price_scale(self) -> PriceScale:
        pass

    @abstractmethod
    def create_price_line(self, options: dict):
        """Create a price line; returns an opaque handle."""

    @abstractmethod
    def update_price_line(self, handle, options: dict):
        pass

    @abstractmethod
    def remove_price_line(self, handle):
        pass

    @abstractmethod
    def set_pan_enabled(self, enabled: bool):
        """Enable or suspend pressed-mouse panning."""

    @abstractmethod
    def fit_content(self):
        """Recenter the time scale on the loaded data."""


class HeadlessChart(ChartSurface):
    """In-memory chart surface."""

    def __init__(self, width: float = 800.0, height: float = 420.0):
        self.width = width
        self._scale = LinearPriceScale(height=height)
        self._ids = count(1)
        self.price_lines: Dict[int, dict] = {}
        self.pan_enabled = True
        self.fit_count = 0

    @property
    def price_scale(self) -> LinearPriceScale:
        return self._scale

    def create_price_line(self, options: dict) -> int:
        handle = next(self._ids)
        self.price_lines[handle] = dict(options)
        return handle

    def update_price_line(self, handle: int, options: dict):
        self.price_lines[handle].update(options)

    def remove_price_line(self, handle: int):
        self.price_lines.pop(handle, None)

    def set_pan_enabled(self, enabled: bool):
        self.pan_enabled = enabled

    def fit_content(self):
        self.fit_count += 1

    def autoscale(self, low: float, high: float, margin: float = 0.1):
        """Fit the price scale around ``[low, high]``."""
        pad = (high - low) * margin or abs(high) * margin or 1.0
        self._scale.set_range(high + pad, low - pad)
