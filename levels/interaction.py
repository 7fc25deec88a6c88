"""Hit-testing, dragging, hover and price-line refresh for Fib levels."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from config import ChartConfig
from providers.base import Bar
from .colors import with_alpha
from .models import (
    DEFAULT_COLOR, DEFAULT_RATIOS, FibLevel, RollingWindow, SnapCandidate,
    format_ratio, nearest_candidate, snap_candidates,
)
from .resolver import PriceLevelResolver
from .surface import ChartSurface, PriceScaleNotReady

logger = logging.getLogger(__name__)

LevelsUpdate = Callable[[str, List[FibLevel]], None]


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class Tooltip:
    text: str
    y: float
    x: Optional[float] = None


@dataclass(frozen=True)
class HoverCandidate:
    name: str
    price: float
    dy: float
    level: Optional[FibLevel] = None


class LineInteractionController:
    """
    ``Idle -> Dragging(level_id) -> Idle`` for one chart.

    Pointer coordinates are relative to the plot's top-left corner. The
    controller never owns levels: it reads them through ``get_levels`` and
    writes through ``on_update``.
    """

    def __init__(
        self,
        symbol: str,
        surface: ChartSurface,
        get_levels: Callable[[], Sequence[FibLevel]],
        on_update: LevelsUpdate,
        resolver: Optional[PriceLevelResolver] = None,
        config: Optional[ChartConfig] = None,
        ratios: Sequence[float] = DEFAULT_RATIOS
    ):
        self.symbol = symbol
        self.surface = surface
        self.get_levels = get_levels
        self.on_update = on_update
        self.resolver = resolver or PriceLevelResolver()
        self.config = config or ChartConfig()
        self.ratios = tuple(ratios)

        self.state = DragState.IDLE
        self.dragging_id: Optional[str] = None
        self.tooltip: Optional[Tooltip] = None
        self.snap_y: Optional[float] = None
        self.last_snap: Optional[SnapCandidate] = None

        self._window: Optional[RollingWindow] = None
        self._last_bar: Optional[Bar] = None
        self._candidates: List[SnapCandidate] = []
        self._price_lines: Dict[str, object] = {}

    # -- market snapshot ----------------------------------------------------

    def set_market(self, bars: Sequence[Bar], window: Optional[RollingWindow]):
        """Take the current window and rebuild snap candidates."""
        self._window = window
        self._last_bar = bars[-1] if bars else None
        self._candidates = snap_candidates(bars, window, self.ratios, self.config.window_size)

    @property
    def candidates(self) -> List[SnapCandidate]:
        return list(self._candidates)

    def resolve(self, level: FibLevel) -> Optional[float]:
        return self.resolver.resolve(level, self._window, self._last_bar)

    # -- coordinate mapping ---------------------------------------------------

    def _price_to_y(self, price: float) -> Optional[float]:
        try:
            return self.surface.price_scale.price_to_coordinate(price)
        except PriceScaleNotReady:
            return None

    def _y_to_price(self, y: float) -> Optional[float]:
        try:
            return self.surface.price_scale.coordinate_to_price(y)
        except PriceScaleNotReady:
            return None

    # -- drag -----------------------------------------------------------------

    def hit_test(self, x: float, y: float) -> Optional[FibLevel]:
        """Enabled level whose right-edge label is under the pointer."""
        if x < self.surface.width - self.config.hit_right_width:
            return None

        target = None
        best_dy = float("inf")
        for level in self.get_levels():
            if not level.enabled:
                continue
            price = self.resolve(level)
            level_y = self._price_to_y(price) if price is not None else None
            if level_y is None:
                continue
            dy = abs(y - level_y)
            if dy < best_dy:
                best_dy = dy
                target = level
        return target if best_dy <= self.config.hit_tolerance_y else None

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        """Start dragging the level under the pointer, if any."""
        if self.state is DragState.DRAGGING:
            return self.dragging_id
        target = self.hit_test(x, y)
        if target is None:
            return None

        self.state = DragState.DRAGGING
        self.dragging_id = target.id
        self.surface.set_pan_enabled(False)
        logger.debug("Drag start %s", target.id)
        return target.id

    def pointer_move(self, y: float) -> Optional[float]:
        """Snap the dragged level to the nearest candidate; returns the new price."""
        if self.state is not DragState.DRAGGING:
            return None
        levels = list(self.get_levels())
        if not any(level.id == self.dragging_id for level in levels):
            return None
        raw = self._y_to_price(y)
        if raw is None:
            return None

        snap = nearest_candidate(self._candidates, raw)
        self.last_snap = snap
        suffix = " (ratio)" if snap.type == "ratio" else ""
        self.tooltip = Tooltip(f"{snap.price:.6f}{suffix}", y)
        self.snap_y = self._price_to_y(snap.price)

        moved = [
            level.with_changes(price=snap.price) if level.id == self.dragging_id else level
            for level in levels
        ]
        self.resolver.forget(self.dragging_id)
        self.on_update(self.symbol, moved)
        return snap.price

    def pointer_up(self):
        """End any drag; safe to call when idle."""
        if self.state is not DragState.DRAGGING:
            return
        logger.debug("Drag end %s", self.dragging_id)
        self.state = DragState.IDLE
        self.dragging_id = None
        self.tooltip = None
        self.snap_y = None
        self.surface.set_pan_enabled(True)

    # -- hover ----------------------------------------------------------------

    def hover(self, x: float, y: float, overlays: Optional[Mapping[str, Optional[float]]] = None) -> Optional[Tooltip]:
        """
        Tooltip for the nearest level or overlay within the hover tolerance.

        ``overlays`` maps shown overlay labels to their last value.
        """
        if self.state is DragState.DRAGGING:
            return self.tooltip
        if self._y_to_price(y) is None:
            self.tooltip = None
            return None

        candidates = []
        for level in self.get_levels():
            if not level.enabled:
                continue
            price = self.resolve(level)
            level_y = self._price_to_y(price) if price is not None else None
            if level_y is None:
                continue
            candidates.append(HoverCandidate(f"Fib {format_ratio(level.ratio)}", price, abs(y - level_y), level))

        for name, value in (overlays or {}).items():
            if value is None:
                continue
            overlay_y = self._price_to_y(value)
            if overlay_y is None:
                continue
            candidates.append(HoverCandidate(name, value, abs(y - overlay_y)))

        best = min(candidates, key=lambda c: c.dy, default=None)
        if best is None or best.dy > self.config.hover_tolerance_y:
            self.tooltip = None
            return None

        text = f"{best.name}: {best.price:.6f}"
        if best.level is not None and best.level.alert_enabled:
            op = getattr(best.level.rsi_op, "value", best.level.rsi_op)
            text += f" • Alert: RSI {op} {best.level.rsi_threshold:g}"
        self.tooltip = Tooltip(text, y, x)
        return self.tooltip

    def hover_leave(self):
        if self.state is DragState.IDLE:
            self.tooltip = None

    # -- render -------------------------------------------------------------

    def refresh(self):
        """Re-apply resolved price, color and width to every enabled level's line."""
        levels = list(self.get_levels())
        visible = set()
        for level in levels:
            if not level.enabled:
                continue
            price = self.resolve(level)
            if price is None:
                continue
            visible.add(level.id)
            options = {
                "price": price,
                "color": with_alpha(level.color or DEFAULT_COLOR, 0.75),
                "line_width": 2 if level.alert_enabled else 1,
                "axis_label_visible": True,
            }
            handle = self._price_lines.get(level.id)
            if handle is None:
                self._price_lines[level.id] = self.surface.create_price_line(options)
            else:
                self.surface.update_price_line(handle, options)

        for level_id in list(self._price_lines):
            if level_id not in visible:
                self.surface.remove_price_line(self._price_lines.pop(level_id))

    def clear(self):
        """Drop all price lines (chart teardown)."""
        self.pointer_up()
        for handle in self._price_lines.values():
            self.surface.remove_price_line(handle)
        self._price_lines.clear()
