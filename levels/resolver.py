"""Price-level resolution and hydration."""
import logging
import math
from typing import Dict, List, Optional, Sequence
from providers.base import Bar
from .models import FibLevel, RollingWindow

logger = logging.getLogger(__name__)


def resolve_price(
    level: FibLevel,
    window: Optional[RollingWindow],
    last_bar: Optional[Bar]
) -> Optional[float]:
    """
    Concrete price for a level.

    Explicit price wins, then the window projection of the ratio, then the
    last close. None means the level is still pending.
    """
    if level.price is not None:
        return level.price
    if window is not None:
        return window.project(level.ratio)
    if last_bar is not None:
        return last_bar.close
    return None


class PriceLevelResolver:
    """
    Writes derived prices back into levels once per window change.

    Remembers the value it last wrote per level id so that a later window
    change re-derives only levels the user has not moved since.
    """

    def __init__(self):
        self._hydrated: Dict[str, float] = {}
        self._last_window: Optional[RollingWindow] = None

    def reset(self):
        self._hydrated.clear()
        self._last_window = None

    def resolve(
        self,
        level: FibLevel,
        window: Optional[RollingWindow],
        last_bar: Optional[Bar]
    ) -> Optional[float]:
        return resolve_price(level, window, last_bar)

    def hydrate(
        self,
        levels: Sequence[FibLevel],
        window: Optional[RollingWindow],
        last_bar: Optional[Bar]
    ) -> Optional[List[FibLevel]]:
        """
        Fill pending levels from the current window.

        Pending levels are always filled. Levels still holding the value last
        written here are re-derived only when the window differs from the
        previous call. Returns the updated list, or None when nothing changed.
        """
        if window is None and last_bar is None:
            return None
        window_changed = window is not None and window != self._last_window
        self._last_window = window

        changed = False
        out = []
        for level in levels:
            updated = self._hydrate_one(level, window, last_bar, window_changed)
            if updated is not level:
                changed = True
            out.append(updated)

        if changed:
            logger.debug("Hydrated levels for %s", levels[0].symbol if levels else "?")
            return out
        return None

    def _hydrate_one(
        self,
        level: FibLevel,
        window: Optional[RollingWindow],
        last_bar: Optional[Bar],
        window_changed: bool
    ) -> FibLevel:
        previous = self._hydrated.get(level.id)
        if level.price is None:
            derived = resolve_price(level, window, last_bar)
        elif window_changed and previous is not None and level.price == previous:
            derived = window.project(level.ratio)
        else:
            return level

        if derived is None or not math.isfinite(derived) or derived == level.price:
            return level
        self._hydrated[level.id] = derived
        return level.with_changes(price=derived)

    def forget(self, level_id: str):
        """Stop tracking a level (it was dragged or edited by hand)."""
        self._hydrated.pop(level_id, None)
