"""Ordered bar buffer fed by historical loads and live updates."""
from typing import List, Optional
from .base import Bar


class BarBuffer:
    """Bars ordered by timestamp, unique per timestamp."""

    APPENDED = "appended"
    REPLACED = "replaced"
    IGNORED = "ignored"

    def __init__(self, bars: Optional[List[Bar]] = None):
        self._bars: List[Bar] = []
        if bars:
            self.reset(bars)

    def reset(self, bars: List[Bar]):
        """Replace the whole buffer (historical load)."""
        deduped = {bar.timestamp: bar for bar in bars}
        self._bars = sorted(deduped.values(), key=lambda b: b.timestamp)

    def apply_update(self, bar: Bar) -> str:
        """
        Apply a live update.

        A bar for the in-progress bucket replaces the last bar, a newer bucket
        is appended. Updates older than the last bar are ignored.
        """
        if self._bars:
            last = self._bars[-1]
            if bar.timestamp == last.timestamp:
                self._bars[-1] = bar
                return self.REPLACED
            if bar.timestamp < last.timestamp:
                return self.IGNORED
        self._bars.append(bar)
        return self.APPENDED

    @property
    def bars(self) -> List[Bar]:
        return list(self._bars)

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def __len__(self) -> int:
        return len(self._bars)
