"""Fibonacci level data model."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence
from providers.base import Bar

DEFAULT_RATIOS = (-1.0, -0.618, -0.272, 0.236, 0.382, 0.5, 0.618, 0.786, 1.272, 1.618, 2.0)
DEFAULT_COLOR = "#ffffff"
DEFAULT_WINDOW_SIZE = 120


class RsiOp(str, Enum):
    """RSI gate comparison."""
    GTE = ">="
    LTE = "<="


def format_ratio(ratio: float) -> str:
    """Shortest text for a ratio: ``-1.0`` -> ``-1``, ``0.618`` -> ``0.618``."""
    text = repr(float(ratio))
    return text[:-2] if text.endswith(".0") else text


def make_level_id(symbol: str, ratio: float) -> str:
    """Stable id per (symbol, ratio), e.g. ``XRPUSD-fib-m0_618``."""
    enc = format_ratio(ratio).replace("-", "m", 1).replace(".", "_", 1)
    return f"{symbol}-fib-{enc}"


@dataclass(frozen=True)
class FibLevel:
    """A horizontal price reference derived from a ratio or set explicitly."""
    id: str
    symbol: str
    ratio: float
    price: Optional[float] = None
    enabled: bool = True
    alert_enabled: bool = False
    rsi_threshold: float = 50.0
    rsi_op: RsiOp = RsiOp.GTE
    color: str = DEFAULT_COLOR

    @classmethod
    def create(cls, symbol: str, ratio: float, **fields) -> "FibLevel":
        return cls(id=make_level_id(symbol, ratio), symbol=symbol, ratio=float(ratio), **fields)

    def with_changes(self, **changes) -> "FibLevel":
        return replace(self, **changes)


def default_levels(symbol: str, ratios: Sequence[float] = DEFAULT_RATIOS) -> List[FibLevel]:
    """Fresh levels for a symbol; prices are hydrated later."""
    return [FibLevel.create(symbol, ratio) for ratio in ratios]


@dataclass(frozen=True)
class RollingWindow:
    """High/low/range over the most recent bars."""
    high: float
    low: float

    @property
    def range(self) -> float:
        return self.high - self.low

    def project(self, ratio: float) -> float:
        return self.low + ratio * self.range

    @classmethod
    def from_bars(cls, bars: Sequence[Bar], size: int = DEFAULT_WINDOW_SIZE) -> Optional["RollingWindow"]:
        look = list(bars)[-size:] if size > 0 else []
        if not look:
            return None
        return cls(high=max(b.high for b in look), low=min(b.low for b in look))


@dataclass(frozen=True)
class SnapCandidate:
    """A price the dragged level gravitates toward."""
    type: str  # "ratio" | "high" | "low"
    price: float
    ratio: Optional[float] = None


def snap_candidates(
    bars: Sequence[Bar],
    window: Optional[RollingWindow],
    ratios: Sequence[float] = DEFAULT_RATIOS,
    size: int = DEFAULT_WINDOW_SIZE
) -> List[SnapCandidate]:
    """Ratio projections of the window plus every window bar's high and low."""
    candidates = []
    if window is not None:
        candidates.extend(SnapCandidate("ratio", window.project(r), r) for r in ratios)
    for bar in list(bars)[-size:] if size > 0 else []:
        candidates.append(SnapCandidate("high", bar.high))
        candidates.append(SnapCandidate("low", bar.low))
    return candidates


def nearest_candidate(candidates: Sequence[SnapCandidate], price: float) -> SnapCandidate:
    """
    Closest candidate by absolute price distance, no threshold.

    With no candidates the raw price comes back untyped. Ties keep the first.
    """
    best = None
    best_distance = float("inf")
    for candidate in candidates:
        distance = abs(candidate.price - price)
        if distance < best_distance:
            best_distance = distance
            best = candidate
    return best if best is not None else SnapCandidate("raw", price)
