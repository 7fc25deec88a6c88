"""Main dashboard engine."""
import asyncio
import logging
from typing import Callable, Dict, List, Optional
from alerts.manager import AlertManager
from config import AppConfig, MarketDataProvider as ProviderKind
from dashboard.chart import ChartSession
from dashboard.scheduler import RenderScheduler
from dashboard.settings import SettingsStore
from dashboard.store import DashboardState, DashboardStore
from levels.surface import ChartSurface, HeadlessChart
from providers.base import MarketDataProvider
from providers.binance import BinanceProvider
from providers.mock import MockProvider

logger = logging.getLogger(__name__)

# Drags and hydration commit many times a second; settings are written once things settle
SETTINGS_SAVE_DELAY_SECONDS = 0.5


class DashboardEngine:
    """Runs one chart session per symbol on a single event loop."""

    def __init__(
        self,
        config: AppConfig,
        provider: Optional[MarketDataProvider] = None,
        store: Optional[DashboardStore] = None,
        settings: Optional[SettingsStore] = None,
        alert_manager: Optional[AlertManager] = None,
        surface_factory: Callable[[str], ChartSurface] = lambda symbol: HeadlessChart(),
        default_symbols: Optional[List[str]] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Application configuration
            provider: Market data provider (built from config when omitted)
            store: Dashboard store (loaded from settings when omitted)
            settings: Settings persistence; every store change is saved to it
            alert_manager: Alert sink
            surface_factory: Builds the chart surface for a symbol
            default_symbols: Symbols used when no settings are stored
        """
        self.config = config
        self.provider = provider or self._create_provider()
        self.settings = settings
        if store is None:
            state = settings.load(default_symbols) if settings else None
            store = DashboardStore(state)
        self.store = store
        self.alert_manager = alert_manager or AlertManager(config.alerts)
        self.alert_manager.speaker.set_enabled(self.store.state.tts_enabled)
        self.surface_factory = surface_factory

        self.sessions: Dict[str, ChartSession] = {}
        self.scheduler = RenderScheduler(lambda: self.sessions.values(), config.chart.refresh_interval_seconds)
        self._pending: List[asyncio.Task] = []
        self._running = False
        self._stopped: Optional[asyncio.Event] = None
        self._unsaved: Optional[DashboardState] = None
        self._save_handle: Optional[asyncio.TimerHandle] = None
        self._unsubscribe = self.store.subscribe(self._on_state_change)

    def _create_provider(self) -> MarketDataProvider:
        """Create market data provider based on config."""
        if self.config.provider is ProviderKind.MOCK:
            logger.info("Using MOCK data provider (simulation mode)")
            return MockProvider()
        if self.config.provider is ProviderKind.BINANCE:
            return BinanceProvider(self.config.binance)
        raise ValueError(f"Unsupported provider: {self.config.provider}")

    def _create_session(self, symbol: str) -> ChartSession:
        return ChartSession(
            symbol,
            self.store,
            self.provider,
            alert_manager=self.alert_manager,
            config=self.config.chart,
            surface=self.surface_factory(symbol),
            history_limit=self.config.binance.history_limit,
        )

    async def start(self):
        """Start a session per symbol and the render scheduler."""
        self._running = True
        self._stopped = asyncio.Event()
        for symbol in self.store.state.symbols:
            self.sessions[symbol] = self._create_session(symbol)
        await asyncio.gather(*(session.start() for session in self.sessions.values()))
        self.scheduler.start()
        logger.info("Dashboard running: %s (%s)", ", ".join(self.sessions), self.store.state.timeframe)

    async def stop(self):
        self._running = False
        await self.scheduler.stop()
        for task in self._pending:
            task.cancel()
        await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()
        await asyncio.gather(*(session.stop() for session in self.sessions.values()))
        self.sessions.clear()
        await self.alert_manager.drain()
        self.flush_settings()
        if self._stopped is not None:
            self._stopped.set()
        logger.info("Dashboard stopped")

    async def run(self):
        """Run until ``stop()`` is called."""
        await self.start()
        await self._stopped.wait()

    async def settle(self):
        """Wait for session changes scheduled by store updates."""
        while self._pending:
            pending, self._pending = self._pending, []
            await asyncio.gather(*pending, return_exceptions=True)

    def _schedule(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.append(task)
        task.add_done_callback(lambda t: t in self._pending and self._pending.remove(t))

    def _on_state_change(self, new: DashboardState, old: DashboardState):
        """Persist, and reconcile running sessions with the new state."""
        self._save_settings(new)
        if new.tts_enabled != old.tts_enabled:
            self.alert_manager.speaker.set_enabled(new.tts_enabled)
        if not self._running:
            return

        timeframe_changed = new.timeframe != old.timeframe
        if timeframe_changed:
            # Old-feed data is dropped now; levels rehydrate once the new history loads
            for session in self.sessions.values():
                session.begin_switch(new.timeframe)
                self._schedule(session.restart())

        for symbol in new.symbols:
            if symbol not in self.sessions:
                session = self._create_session(symbol)
                self.sessions[symbol] = session
                self._schedule(session.start())
        for symbol in list(self.sessions):
            if symbol not in new.symbols:
                self._schedule(self.sessions.pop(symbol).stop())

        if timeframe_changed:
            return
        redisplay = new.use_heikin_ashi != old.use_heikin_ashi
        for symbol, session in self.sessions.items():
            if redisplay or new.overlays.get(symbol) != old.overlays.get(symbol):
                session.recompute()
            elif new.levels.get(symbol) != old.levels.get(symbol):
                session.sync_levels()

    def _save_settings(self, state: DashboardState):
        if self.settings is None:
            return
        if not self._running:
            self.settings.save(state)
            return
        self._unsaved = state
        if self._save_handle is None:
            self._save_handle = asyncio.get_running_loop().call_later(
                SETTINGS_SAVE_DELAY_SECONDS, self.flush_settings
            )

    def flush_settings(self):
        """Write the latest unsaved state now."""
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        state, self._unsaved = self._unsaved, None
        if state is not None and self.settings is not None:
            self.settings.save(state)
