"""VWAP/EMA overlay configuration and series."""
from dataclasses import dataclass, replace
from typing import Dict, List, Optional
from indicators.moving_average import SeriesPoint, ema, sma_smooth, vwap
from providers.base import Bar

SMOOTH_CHOICES = (1, 3, 5, 9)


@dataclass(frozen=True)
class OverlaySpec:
    key: str
    label: str
    period: Optional[int]  # None for VWAP


OVERLAYS = (
    OverlaySpec("vwap", "VWAP", None),
    OverlaySpec("ema9", "EMA 9", 9),
    OverlaySpec("ema20", "EMA 20", 20),
    OverlaySpec("ema200", "EMA 200", 200),
)
OVERLAY_KEYS = tuple(spec.key for spec in OVERLAYS)


@dataclass(frozen=True)
class OverlayConfig:
    show: bool
    color: str
    opacity: float
    smooth: int = 1

    def __post_init__(self):
        if not 0.0 <= float(self.opacity) <= 1.0:
            raise ValueError(f"Overlay opacity must be within [0, 1], got {self.opacity}")
        if self.smooth not in SMOOTH_CHOICES:
            raise ValueError(f"Overlay smoothing must be one of {SMOOTH_CHOICES}, got {self.smooth}")

    def with_changes(self, **changes) -> "OverlayConfig":
        return replace(self, **changes)


DEFAULT_OVERLAYS: Dict[str, OverlayConfig] = {
    "vwap": OverlayConfig(show=True, color="#ffffff", opacity=0.5),
    "ema9": OverlayConfig(show=False, color="#a78bfa", opacity=0.75),
    "ema20": OverlayConfig(show=False, color="#60a5fa", opacity=0.75),
    "ema200": OverlayConfig(show=False, color="#f87171", opacity=0.9),
}


def default_overlays() -> Dict[str, OverlayConfig]:
    return dict(DEFAULT_OVERLAYS)


def compute_overlays(bars: List[Bar], configs: Dict[str, OverlayConfig]) -> Dict[str, List[SeriesPoint]]:
    """Series for every shown overlay, keyed like ``configs``."""
    out = {}
    for spec in OVERLAYS:
        cfg = configs.get(spec.key)
        if cfg is None or not cfg.show:
            continue
        series = vwap(bars) if spec.period is None else ema(bars, spec.period)
        out[spec.key] = sma_smooth(series, cfg.smooth)
    return out


def last_values(series: Dict[str, List[SeriesPoint]]) -> Dict[str, float]:
    """Label -> last value, the hover candidates for overlays."""
    labels = {spec.key: spec.label for spec in OVERLAYS}
    return {labels[key]: points[-1][1] for key, points in series.items() if points}
