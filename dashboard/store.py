"""Dashboard state: symbols, Fib levels, overlays and global toggles.

The store owns the state. Every update builds a new frozen snapshot and
notifies subscribers; nothing outside the store mutates a snapshot.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from levels.models import DEFAULT_COLOR, FibLevel, RsiOp, default_levels
from .overlays import OVERLAY_KEYS, OverlayConfig, default_overlays

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "XRPUSD"
TIMEFRAMES = ("1m", "5m", "1h", "1d")
DEFAULT_TIMEFRAME = "1d"

EDITABLE_LEVEL_FIELDS = {"price", "enabled", "alert_enabled", "rsi_threshold", "rsi_op", "color"}


@dataclass(frozen=True)
class DashboardState:
    symbols: Tuple[str, ...] = (DEFAULT_SYMBOL,)
    levels: Dict[str, Tuple[FibLevel, ...]] = field(default_factory=dict)
    overlays: Dict[str, Dict[str, OverlayConfig]] = field(default_factory=dict)
    timeframe: str = DEFAULT_TIMEFRAME
    use_heikin_ashi: bool = False
    use_ha_rsi: bool = False
    tts_enabled: bool = False


def normalize_symbols(symbols: Iterable[str]) -> Tuple[str, ...]:
    """Uppercase, drop blanks and duplicates, keep order, always include XRPUSD first."""
    out: List[str] = []
    for sym in symbols or ():
        s = str(sym).strip().upper()
        if s and s not in out:
            out.append(s)
    if DEFAULT_SYMBOL not in out:
        out.insert(0, DEFAULT_SYMBOL)
    return tuple(out)


def complete_state(state: DashboardState) -> DashboardState:
    """Create levels/overlays for listed symbols and prune the rest."""
    levels = {}
    overlays = {}
    for sym in state.symbols:
        levels[sym] = tuple(state.levels.get(sym) or default_levels(sym))
        merged = default_overlays()
        merged.update(state.overlays.get(sym, {}))
        overlays[sym] = merged
    return replace(state, levels=levels, overlays=overlays)


def _normalize_level(level: FibLevel) -> FibLevel:
    # color is never lost
    return level if level.color else level.with_changes(color=DEFAULT_COLOR)


class DashboardStore:
    """Owned dashboard state with explicit update operations."""

    def __init__(self, state: Optional[DashboardState] = None):
        self._state = complete_state(state or DashboardState())
        self._listeners: List[Callable[[DashboardState, DashboardState], None]] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    def levels(self, symbol: str) -> Tuple[FibLevel, ...]:
        return self._state.levels.get(symbol, ())

    def overlays(self, symbol: str) -> Dict[str, OverlayConfig]:
        return dict(self._state.overlays.get(symbol, {}))

    def subscribe(self, listener: Callable[[DashboardState, DashboardState], None]) -> Callable[[], None]:
        """``listener(new_state, old_state)`` after each change; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _commit(self, new_state: DashboardState) -> DashboardState:
        if new_state == self._state:
            return self._state
        old, self._state = self._state, new_state
        for listener in list(self._listeners):
            listener(new_state, old)
        return new_state

    def _require_symbol(self, symbol: str):
        if symbol not in self._state.levels:
            raise ValueError(f"Unknown symbol: {symbol}")

    def _set_levels(self, symbol: str, levels: Iterable[FibLevel]) -> DashboardState:
        all_levels = dict(self._state.levels)
        all_levels[symbol] = tuple(levels)
        return self._commit(replace(self._state, levels=all_levels))

    def _map_levels(self, symbol: str, fn: Callable[[FibLevel], FibLevel]) -> DashboardState:
        self._require_symbol(symbol)
        return self._set_levels(symbol, [fn(level) for level in self.levels(symbol)])

    # -- symbols ------------------------------------------------------------

    def add_symbol(self, raw: str) -> DashboardState:
        sym = (raw or "").strip().upper()
        if not sym:
            return self._state
        symbols = normalize_symbols(self._state.symbols + (sym,))
        return self._commit(complete_state(replace(self._state, symbols=symbols)))

    def remove_symbol(self, symbol: str) -> DashboardState:
        symbols = tuple(s for s in self._state.symbols if s != symbol)
        return self._commit(complete_state(replace(self._state, symbols=symbols)))

    # -- levels -------------------------------------------------------------

    def update_levels(self, symbol: str, levels: Iterable[FibLevel]) -> DashboardState:
        """Replace a symbol's levels (hydration and drag updates)."""
        self._require_symbol(symbol)
        return self._set_levels(symbol, [_normalize_level(level) for level in levels])

    def update_level(self, symbol: str, level_id: str, **patch) -> DashboardState:
        """Edit fields of a single level."""
        unknown = set(patch) - EDITABLE_LEVEL_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit level fields: {', '.join(sorted(unknown))}")
        if "rsi_op" in patch:
            patch["rsi_op"] = RsiOp(patch["rsi_op"])
        if "rsi_threshold" in patch:
            patch["rsi_threshold"] = float(patch["rsi_threshold"])
        if patch.get("price") is not None:
            patch["price"] = float(patch["price"])
        self._require_symbol(symbol)
        if not any(level.id == level_id for level in self.levels(symbol)):
            raise ValueError(f"Unknown level: {level_id}")
        return self._map_levels(
            symbol,
            lambda level: level.with_changes(**patch) if level.id == level_id else level
        )

    def snap_non_alert_to_range(self, symbol: str) -> DashboardState:
        """Non-alert levels go back to ratio-derived prices and the default color."""
        return self._map_levels(
            symbol,
            lambda level: level if level.alert_enabled else level.with_changes(price=None, color=DEFAULT_COLOR)
        )

    def reset_to_default_ratios(self, symbol: str) -> DashboardState:
        """Fresh default levels, keeping each level's color by id."""
        self._require_symbol(symbol)
        colors = {level.id: level.color or DEFAULT_COLOR for level in self.levels(symbol)}
        fresh = [level.with_changes(color=colors.get(level.id, DEFAULT_COLOR)) for level in default_levels(symbol)]
        return self._set_levels(symbol, fresh)

    def apply_bulk_color(self, symbol: str, color: Optional[str]) -> DashboardState:
        chosen = color or DEFAULT_COLOR
        return self._map_levels(
            symbol,
            lambda level: level if level.alert_enabled else level.with_changes(color=chosen)
        )

    # -- overlays -----------------------------------------------------------

    def set_overlay(self, symbol: str, key: str, **patch) -> DashboardState:
        self._require_symbol(symbol)
        if key not in OVERLAY_KEYS:
            raise ValueError(f"Unknown overlay: {key}")
        overlays = dict(self._state.overlays)
        symbol_overlays = dict(overlays[symbol])
        symbol_overlays[key] = symbol_overlays[key].with_changes(**patch)
        overlays[symbol] = symbol_overlays
        return self._commit(replace(self._state, overlays=overlays))

    # -- globals ------------------------------------------------------------

    def set_timeframe(self, timeframe: str) -> DashboardState:
        """Switch timeframe; non-alert levels re-derive from the new window."""
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"Unsupported timeframe: {timeframe}")
        if timeframe == self._state.timeframe:
            return self._state
        levels = {
            sym: tuple(level if level.alert_enabled else level.with_changes(price=None) for level in lines)
            for sym, lines in self._state.levels.items()
        }
        logger.info("Timeframe %s -> %s", self._state.timeframe, timeframe)
        return self._commit(replace(self._state, timeframe=timeframe, levels=levels))

    def set_use_heikin_ashi(self, value: bool) -> DashboardState:
        return self._commit(replace(self._state, use_heikin_ashi=bool(value)))

    def set_use_ha_rsi(self, value: bool) -> DashboardState:
        return self._commit(replace(self._state, use_ha_rsi=bool(value)))

    def set_tts_enabled(self, value: bool) -> DashboardState:
        return self._commit(replace(self._state, tts_enabled=bool(value)))
