"""Fibonacci level model, resolution and interaction."""
from .models import (
    DEFAULT_COLOR, DEFAULT_RATIOS, FibLevel, RollingWindow, RsiOp, SnapCandidate,
    default_levels, format_ratio, make_level_id, nearest_candidate, snap_candidates,
)
from .resolver import PriceLevelResolver, resolve_price
from .interaction import DragState, LineInteractionController, Tooltip
from .surface import ChartSurface, HeadlessChart, LinearPriceScale, PriceScale, PriceScaleNotReady

__all__ = [
    "DEFAULT_COLOR", "DEFAULT_RATIOS", "FibLevel", "RollingWindow", "RsiOp", "SnapCandidate",
    "default_levels", "format_ratio", "make_level_id", "nearest_candidate", "snap_candidates",
    "PriceLevelResolver", "resolve_price",
    "DragState", "LineInteractionController", "Tooltip",
    "ChartSurface", "HeadlessChart", "LinearPriceScale", "PriceScale", "PriceScaleNotReady",
]
