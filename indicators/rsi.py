"""RSI indicator implementation using Wilder's smoothing method."""
from typing import List, Optional, Sequence
from providers.base import Bar


class RSI:
    """RSI calculator using Wilder's smoothing method."""

    def __init__(self, period: int = 14):
        """
        Initialize RSI calculator.

        Args:
            period: RSI period (default 14)
        """
        if period < 1:
            raise ValueError("RSI period must be at least 1")
        self.period = period

    def calculate_values(self, closes: Sequence[float]) -> List[Optional[float]]:
        """
        Calculate RSI values for a series of closing prices.

        Returns:
            List of RSI values (same length as closes, None for insufficient data)
        """
        if len(closes) < self.period + 1:
            return [None] * len(closes)

        deltas = [closes[i] - closes[i-1] for i in range(1, len(closes))]
        gains = [delta if delta > 0 else 0.0 for delta in deltas]
        losses = [-delta if delta < 0 else 0.0 for delta in deltas]

        # Seed with a simple average, then Wilder's smoothing
        avg_gain = sum(gains[:self.period]) / self.period
        avg_loss = sum(losses[:self.period]) / self.period

        rsi_values: List[Optional[float]] = [None] * self.period
        rsi_values.append(self._to_rsi(avg_gain, avg_loss))

        for i in range(self.period, len(gains)):
            avg_gain = (avg_gain * (self.period - 1) + gains[i]) / self.period
            avg_loss = (avg_loss * (self.period - 1) + losses[i]) / self.period
            rsi_values.append(self._to_rsi(avg_gain, avg_loss))

        return rsi_values

    def calculate(self, bars: List[Bar]) -> List[Optional[float]]:
        """Calculate RSI values over the closes of ``bars``."""
        return self.calculate_values([bar.close for bar in bars])

    def get_latest(self, bars: List[Bar]) -> Optional[float]:
        """
        Get the latest RSI value.

        Returns:
            Latest RSI value or None if insufficient data
        """
        rsi_values = self.calculate(bars)
        return rsi_values[-1] if rsi_values else None

    @staticmethod
    def _to_rsi(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100 - (100 / (1 + rs))
