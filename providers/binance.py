"""Binance market data provider implementation."""
import json
import logging
import requests
import websockets
from typing import AsyncIterator, List, Optional
from datetime import datetime, timezone
from .base import MarketDataProvider, Bar
from config import BinanceConfig

logger = logging.getLogger(__name__)

BINANCE_INTERVAL = {"1m": "1m", "5m": "5m", "1h": "1h", "1d": "1d"}


class BinanceProvider(MarketDataProvider):
    """Binance klines over REST, live updates over the kline websocket."""

    def __init__(self, config: BinanceConfig):
        self.config = config
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def get_historical_bars(
        self,
        symbol: str,
        interval: str,
        count: int = 500
    ) -> List[Bar]:
        """Fetch historical klines from Binance."""
        url = f"{self.config.rest_url}/v3/klines"
        params = {
            "symbol": symbol,
            "interval": self._map_interval(interval),
            "limit": count
        }

        try:
            response = self.session.get(url, params=params, timeout=self.config.timeout_seconds)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching historical bars for %s %s: %s", symbol, interval, e)
            return []

        bars = []
        for row in data:
            try:
                bars.append(self._parse_kline_row(row))
            except (IndexError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed kline for %s: %s", symbol, e)
        return sorted(bars, key=lambda x: x.timestamp)

    def get_latest_bar(
        self,
        symbol: str,
        interval: str
    ) -> Optional[Bar]:
        """Fetch the in-progress kline."""
        bars = self.get_historical_bars(symbol, interval, count=1)
        return bars[-1] if bars else None

    async def stream_bars(self, symbol: str, interval: str) -> AsyncIterator[Bar]:
        """Subscribe to ``<symbol>@kline_<interval>`` and yield bar updates."""
        stream = f"{symbol.lower()}@kline_{self._map_interval(interval)}"
        url = f"{self.config.ws_url}{stream}"

        async with websockets.connect(url) as ws:
            logger.info("Connected to Binance stream %s", stream)
            async for raw in ws:
                bar = self.parse_stream_message(raw)
                if bar is not None:
                    yield bar

    @staticmethod
    def parse_stream_message(raw) -> Optional[Bar]:
        """Parse a kline stream payload; anything else yields None."""
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            return None
        kline = payload.get("k") if isinstance(payload, dict) else None
        if not kline:
            return None
        try:
            return Bar(
                timestamp=_from_millis(kline["t"]),
                open=float(kline["o"]),
                high=float(kline["h"]),
                low=float(kline["l"]),
                close=float(kline["c"]),
                volume=float(kline["v"])
            )
        except (KeyError, TypeError, ValueError):
            return None

    @staticmethod
    def _parse_kline_row(row: list) -> Bar:
        """Parse a REST kline row ``[open_time, o, h, l, c, v, ...]``."""
        return Bar(
            timestamp=_from_millis(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5])
        )

    def _map_interval(self, interval: str) -> str:
        """Map dashboard timeframe to Binance interval."""
        try:
            return BINANCE_INTERVAL[interval]
        except KeyError:
            raise ValueError(f"Unsupported interval: {interval}")


def _from_millis(value) -> datetime:
    return datetime.fromtimestamp(int(value) // 1000, tz=timezone.utc)
