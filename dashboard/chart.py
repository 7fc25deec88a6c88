"""Per-symbol chart session: bar buffer, indicators, levels and alerts."""
import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional
from alerts.manager import AlertManager
from config import ChartConfig
from indicators.heikin_ashi import to_heikin_ashi
from indicators.moving_average import SeriesPoint
from indicators.rsi import RSI
from levels.interaction import LineInteractionController
from levels.models import RollingWindow
from levels.resolver import PriceLevelResolver
from levels.surface import ChartSurface, HeadlessChart
from providers.base import Bar, MarketDataProvider
from providers.buffer import BarBuffer
from signals.crossing import AlertEvaluator, AlertEvent, RsiSource
from .overlays import compute_overlays, last_values
from .store import DashboardStore

logger = logging.getLogger(__name__)

STREAM_RETRY_SECONDS = 1.0


class ChartSession:
    """
    Live chart for one symbol.

    All state changes happen on the event loop. Blocking history fetches
    run in the default executor and are discarded when the session's
    generation moved on while they were in flight.
    """

    def __init__(
        self,
        symbol: str,
        store: DashboardStore,
        provider: MarketDataProvider,
        alert_manager: Optional[AlertManager] = None,
        config: Optional[ChartConfig] = None,
        surface: Optional[ChartSurface] = None,
        history_limit: int = 500,
        clock: Callable[[], float] = time.monotonic
    ):
        self.symbol = symbol
        self.store = store
        self.provider = provider
        self.alert_manager = alert_manager
        self.config = config or ChartConfig()
        self.surface = surface or HeadlessChart()
        self.history_limit = history_limit
        self.clock = clock

        self.timeframe = store.state.timeframe
        self.buffer = BarBuffer()
        self.rsi_calc = RSI(self.config.rsi_period)
        self.resolver = PriceLevelResolver()
        self.controller = LineInteractionController(
            symbol,
            self.surface,
            get_levels=lambda: self.store.levels(self.symbol),
            on_update=self.store.update_levels,
            resolver=self.resolver,
            config=self.config,
        )
        self.evaluator = AlertEvaluator(symbol, self.timeframe)

        self.window: Optional[RollingWindow] = None
        self.rsi: Optional[float] = None
        self.ha_rsi: Optional[float] = None
        self.display_bars: List[Bar] = []
        self.overlay_series: Dict[str, List[SeriesPoint]] = {}

        self._generation = 0
        self._stream_task: Optional[asyncio.Task] = None
        self._manual_zoom_at: Optional[float] = None

    # -- lifecycle ----------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self):
        """Load history, then follow the live stream."""
        generation = self._generation
        await self.load_history()
        if generation == self._generation:
            self._stream_task = asyncio.create_task(self._run_stream(generation))

    async def stop(self):
        """Tear down the live stream and drop price lines."""
        self._generation += 1
        await self._cancel_stream()
        self.controller.clear()

    def begin_switch(self, timeframe: str):
        """
        Drop all data of the current timeframe.

        Runs synchronously when the timeframe change is committed, so a live
        tick still queued for the old feed is discarded instead of hydrating
        levels from the old window.
        """
        self._generation += 1
        self.timeframe = timeframe
        self.buffer = BarBuffer()
        self.resolver.reset()
        self.evaluator.reset(timeframe)
        self.controller.set_market([], None)
        self.window = None
        self.rsi = self.ha_rsi = None
        self.display_bars = []
        self.overlay_series = {}

    async def restart(self):
        """Tear down the old stream and load the current timeframe."""
        await self._cancel_stream()
        await self.start()

    async def switch_timeframe(self, timeframe: str):
        """Abandon the current feed and restart on ``timeframe``."""
        self.begin_switch(timeframe)
        await self.restart()

    async def _cancel_stream(self):
        task, self._stream_task = self._stream_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # -- data -----------------------------------------------------------------

    async def load_history(self) -> bool:
        """
        Fetch historical bars for the current timeframe.

        Transport failures leave prior data in place. A response that
        arrives after a symbol/timeframe switch is discarded.
        """
        generation = self._generation
        loop = asyncio.get_running_loop()
        try:
            bars = await loop.run_in_executor(
                None, self.provider.get_historical_bars, self.symbol, self.timeframe, self.history_limit
            )
        except Exception as e:
            logger.error("History fetch failed for %s %s: %s", self.symbol, self.timeframe, e)
            return False

        if generation != self._generation:
            logger.debug("Discarding stale history for %s", self.symbol)
            return False
        if not bars:
            logger.warning("No bars returned for %s %s", self.symbol, self.timeframe)
            return False

        self.buffer.reset(bars)
        self.recompute()
        self.evaluator.prime(self.buffer.last.close)
        if self.allow_auto_center():
            self.surface.fit_content()
        logger.info("Loaded %d bars for %s %s", len(self.buffer), self.symbol, self.timeframe)
        return True

    async def _run_stream(self, generation: int):
        while generation == self._generation:
            try:
                async for bar in self.provider.stream_bars(self.symbol, self.timeframe):
                    if generation != self._generation:
                        return
                    self.on_bar(bar)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Live stream error for %s %s: %s, reconnecting", self.symbol, self.timeframe, e)
            await asyncio.sleep(STREAM_RETRY_SECONDS)

    def on_bar(self, bar: Bar) -> List[AlertEvent]:
        """Apply a live update and evaluate alerts on the new close."""
        if self.buffer.apply_update(bar) == BarBuffer.IGNORED:
            return []
        self.recompute()
        return self.evaluate_alerts()

    def recompute(self):
        """Derive window, RSI, display bars and overlays from the buffer; hydrate levels."""
        state = self.store.state
        bars = self.buffer.bars
        ha_bars = to_heikin_ashi(bars)

        self.window = RollingWindow.from_bars(bars, self.config.window_size)
        self.rsi = self.rsi_calc.get_latest(bars)
        self.ha_rsi = self.rsi_calc.get_latest(ha_bars)
        self.display_bars = ha_bars if state.use_heikin_ashi else bars
        self.overlay_series = compute_overlays(self.display_bars, self.store.overlays(self.symbol))

        self.controller.set_market(bars, self.window)
        if self.window is not None and isinstance(self.surface, HeadlessChart):
            self.surface.autoscale(self.window.low, self.window.high)

        self.sync_levels()

    def sync_levels(self):
        """Write derived prices into pending levels (no-op when nothing is pending)."""
        hydrated = self.resolver.hydrate(self.store.levels(self.symbol), self.window, self.buffer.last)
        if hydrated is not None:
            self.store.update_levels(self.symbol, hydrated)

    def evaluate_alerts(self) -> List[AlertEvent]:
        """Crossings on the latest close; each is handed to the alert sink as its own task."""
        last = self.buffer.last
        if last is None:
            return []
        use_ha = self.store.state.use_ha_rsi
        events = self.evaluator.evaluate(
            self.store.levels(self.symbol),
            last.close,
            self.ha_rsi if use_ha else self.rsi,
            RsiSource.HEIKIN_ASHI if use_ha else RsiSource.STANDARD,
        )
        if self.alert_manager is not None:
            for event in events:
                self.alert_manager.submit(event)
        return events

    # -- view -----------------------------------------------------------------

    def mark_manual_zoom(self):
        """Record user zoom/pan input; pauses auto-centering for a cooldown."""
        self._manual_zoom_at = self.clock()

    def allow_auto_center(self) -> bool:
        if self._manual_zoom_at is None:
            return True
        return self.clock() - self._manual_zoom_at > self.config.auto_center_cooldown_seconds

    def overlay_values(self) -> Dict[str, float]:
        return last_values(self.overlay_series)

    def hover(self, x: float, y: float):
        return self.controller.hover(x, y, self.overlay_values())

    def refresh(self):
        self.controller.refresh()

    @property
    def rsi_badge(self) -> str:
        rsi = f"{self.rsi:.1f}" if self.rsi is not None else "--"
        ha = f"{self.ha_rsi:.1f}" if self.ha_rsi is not None else "--"
        return f"RSI: {rsi}  |  HA-RSI: {ha}"
