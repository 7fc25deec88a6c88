"""Edge-triggered Fib level crossing detection with an RSI gate."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence
from levels.models import FibLevel, RsiOp, format_ratio

logger = logging.getLogger(__name__)


class RsiSource(str, Enum):
    """Which closes feed the RSI gate."""
    STANDARD = "standard"
    HEIKIN_ASHI = "heikin_ashi"


@dataclass(frozen=True)
class AlertEvent:
    """A crossing that passed the RSI gate."""
    timestamp: datetime
    symbol: str
    timeframe: str
    ratio: float
    price: float
    rsi_value: float
    message: str
    delivered: Optional[bool] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "ratio": self.ratio,
            "price": self.price,
            "rsi_value": self.rsi_value,
            "delivered": self.delivered,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            symbol=data["symbol"],
            timeframe=data["timeframe"],
            ratio=float(data["ratio"]),
            price=float(data["price"]),
            rsi_value=float(data["rsi_value"]),
            delivered=data.get("delivered"),
            message=data.get("message", ""),
        )


def rsi_gate(op, rsi_value: float, threshold: float) -> bool:
    """``>=`` requires rsi >= threshold, ``<=`` requires rsi <= threshold."""
    if RsiOp(op) is RsiOp.GTE:
        return rsi_value >= threshold
    return rsi_value <= threshold


def format_alert_message(
    symbol: str,
    timeframe: str,
    ratio: float,
    price: float,
    rsi_value: float,
    source: RsiSource = RsiSource.STANDARD
) -> str:
    tag = "(HA)" if source is RsiSource.HEIKIN_ASHI else ""
    return f"{symbol} {timeframe} crossed {format_ratio(ratio)} at {price:.6f} | RSI {tag}={rsi_value:.1f}"


class AlertEvaluator:
    """
    Detects directional crossings of alert-enabled levels.

    The previous observed close is kept between calls, so a crossing is seen
    exactly once: later ticks that stay on the same side never re-fire.
    """

    def __init__(self, symbol: str, timeframe: str):
        self.symbol = symbol
        self.timeframe = timeframe
        self.previous_close: Optional[float] = None

    def reset(self, timeframe: Optional[str] = None):
        """Forget the previous close (symbol/timeframe switch)."""
        if timeframe is not None:
            self.timeframe = timeframe
        self.previous_close = None

    def prime(self, close: Optional[float]):
        """Seed the reference close without evaluating (after a history load)."""
        self.previous_close = close

    def evaluate(
        self,
        levels: Sequence[FibLevel],
        current_close: Optional[float],
        rsi_value: Optional[float],
        source: RsiSource = RsiSource.STANDARD,
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        """
        Evaluate one tick.

        Returns one AlertEvent per level crossed between the previous close
        and ``current_close`` whose RSI gate passes.
        """
        if current_close is None:
            return []
        previous = self.previous_close
        self.previous_close = current_close
        if previous is None or rsi_value is None:
            return []

        events = []
        for level in levels:
            if not (level.enabled and level.alert_enabled) or level.price is None:
                continue

            was_below = previous < level.price
            is_below = current_close < level.price
            if was_below == is_below:
                continue
            if not rsi_gate(level.rsi_op, rsi_value, level.rsi_threshold):
                logger.debug("Crossing of %s gated out (RSI %.1f)", level.id, rsi_value)
                continue

            message = format_alert_message(
                self.symbol, self.timeframe, level.ratio, level.price, rsi_value, source
            )
            events.append(AlertEvent(
                timestamp=now or datetime.now(timezone.utc),
                symbol=self.symbol,
                timeframe=self.timeframe,
                ratio=level.ratio,
                price=level.price,
                rsi_value=rsi_value,
                message=message,
            ))
            logger.info("Crossing: %s", message)
        return events
