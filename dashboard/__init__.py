"""Dashboard state, persistence and chart sessions."""
from .store import DashboardState, DashboardStore, TIMEFRAMES
from .settings import SettingsStore, deserialize_state, serialize_state
from .overlays import OverlayConfig, default_overlays
from .chart import ChartSession
from .scheduler import RenderScheduler

__all__ = [
    "DashboardState", "DashboardStore", "TIMEFRAMES",
    "SettingsStore", "deserialize_state", "serialize_state",
    "OverlayConfig", "default_overlays",
    "ChartSession", "RenderScheduler",
]
