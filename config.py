"""Configuration management for the Fib Alerts Dashboard."""
import os
from typing import Optional
from dataclasses import dataclass
from enum import Enum


class MarketDataProvider(str, Enum):
    """Supported market data providers."""
    BINANCE = "binance"
    MOCK = "mock"


@dataclass
class BinanceConfig:
    """Binance REST/websocket configuration."""
    rest_url: str = "https://api.binance.us/api"
    ws_url: str = "wss://stream.binance.us:9443/ws/"
    history_limit: int = 500
    timeout_seconds: int = 10


@dataclass
class ChartConfig:
    """Per-chart interaction and window settings."""
    window_size: int = 120
    hit_right_width: float = 64.0  # px from right edge to grab a label
    hit_tolerance_y: float = 12.0
    hover_tolerance_y: float = 10.0
    auto_center_cooldown_seconds: float = 1.2
    refresh_interval_seconds: float = 1 / 30
    rsi_period: int = 14


@dataclass
class AlertConfig:
    """Alert delivery configuration."""
    relay_url: str = "http://localhost:4000/alert"
    timeout_seconds: int = 5
    history_file: Optional[str] = "alerts_history.json"
    max_entries: int = 200


@dataclass
class RelayConfig:
    """Telegram relay configuration."""
    bot_token: str = ""
    chat_id: str = ""
    port: int = 4000
    telegram_api_url: str = "https://api.telegram.org"

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)


@dataclass
class AppConfig:
    """Main application configuration."""
    provider: MarketDataProvider = MarketDataProvider.BINANCE
    settings_file: str = "dashboard_settings.json"
    log_level: str = "INFO"
    binance: BinanceConfig = None
    chart: ChartConfig = None
    alerts: AlertConfig = None
    relay: RelayConfig = None

    def __post_init__(self):
        if self.binance is None:
            self.binance = BinanceConfig()
        if self.chart is None:
            self.chart = ChartConfig()
        if self.alerts is None:
            self.alerts = AlertConfig()
        if self.relay is None:
            self.relay = RelayConfig()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        config = cls()

        provider = os.getenv("MARKET_DATA_PROVIDER", "binance").lower()
        try:
            config.provider = MarketDataProvider(provider)
        except ValueError:
            pass

        config.binance.rest_url = os.getenv("BINANCE_REST_URL", config.binance.rest_url)
        config.binance.ws_url = os.getenv("BINANCE_WS_URL", config.binance.ws_url)
        config.binance.history_limit = _int_env("HISTORY_LIMIT", config.binance.history_limit)

        config.chart.window_size = _int_env("FIB_WINDOW_SIZE", config.chart.window_size)
        config.chart.auto_center_cooldown_seconds = _float_env(
            "AUTO_CENTER_COOLDOWN_SECONDS",
            config.chart.auto_center_cooldown_seconds
        )

        config.alerts.relay_url = os.getenv("ALERT_RELAY_URL", config.alerts.relay_url)
        config.alerts.history_file = os.getenv("ALERT_HISTORY_FILE", config.alerts.history_file) or None

        # Relay credentials (missing values are reported by the relay, not raised)
        config.relay.bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "")
        config.relay.chat_id = os.getenv("TELEGRAM_CHAT_ID", "")
        config.relay.port = _int_env("PORT", config.relay.port)

        config.settings_file = os.getenv("DASHBOARD_SETTINGS_FILE", config.settings_file)
        config.log_level = os.getenv("LOG_LEVEL", config.log_level).upper()

        return config


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default
