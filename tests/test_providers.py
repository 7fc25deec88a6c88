import json
import pytest
import requests
from datetime import datetime, timezone
from unittest.mock import Mock
from conftest import make_bar
from config import BinanceConfig
from providers.binance import BinanceProvider
from providers.buffer import BarBuffer
from providers.mock import MockProvider

KLINE_ROW = [1700000000000, "0.5000", "0.5200", "0.4900", "0.5100", "12345.6", 1700000059999]


class TestBarBuffer:
    def test_reset_sorts_and_dedupes(self):
        buffer = BarBuffer([make_bar(2, 3.0), make_bar(0, 1.0), make_bar(2, 4.0), make_bar(1, 2.0)])

        assert [b.close for b in buffer.bars] == [1.0, 2.0, 4.0]

    def test_live_updates(self):
        buffer = BarBuffer([make_bar(0, 1.0), make_bar(1, 2.0)])

        assert buffer.apply_update(make_bar(1, 2.5)) == BarBuffer.REPLACED
        assert buffer.apply_update(make_bar(2, 3.0)) == BarBuffer.APPENDED
        assert buffer.apply_update(make_bar(0, 9.0)) == BarBuffer.IGNORED
        assert [b.close for b in buffer.bars] == [1.0, 2.5, 3.0]
        assert buffer.last.close == 3.0

    def test_empty(self):
        buffer = BarBuffer()

        assert buffer.last is None
        assert buffer.apply_update(make_bar(0, 1.0)) == BarBuffer.APPENDED


class TestBinanceProvider:
    @pytest.fixture
    def provider(self):
        provider = BinanceProvider(BinanceConfig(rest_url="https://binance.test/api"))
        provider.session = Mock()
        return provider

    def test_historical_bars(self, provider):
        response = Mock()
        response.json.return_value = [KLINE_ROW]
        provider.session.get.return_value = response

        bars = provider.get_historical_bars("XRPUSD", "5m", 500)

        provider.session.get.assert_called_once_with(
            "https://binance.test/api/v3/klines",
            params={"symbol": "XRPUSD", "interval": "5m", "limit": 500},
            timeout=10
        )
        assert len(bars) == 1
        assert bars[0].timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert (bars[0].open, bars[0].high, bars[0].low, bars[0].close) == (0.5, 0.52, 0.49, 0.51)
        assert bars[0].volume == 12345.6

    def test_transport_failure_returns_empty(self, provider):
        provider.session.get.side_effect = requests.ConnectionError("down")

        assert provider.get_historical_bars("XRPUSD", "1m") == []

    def test_malformed_rows_skipped(self, provider):
        response = Mock()
        response.json.return_value = [KLINE_ROW, ["bad"]]
        provider.session.get.return_value = response

        assert len(provider.get_historical_bars("XRPUSD", "1m")) == 1

    def test_unsupported_interval(self, provider):
        with pytest.raises(ValueError):
            provider.get_historical_bars("XRPUSD", "4h")

    def test_stream_message(self):
        raw = json.dumps({"e": "kline", "k": {
            "t": 1700000000000, "o": "1", "h": "2", "l": "0.5", "c": "1.5", "v": "10", "x": False,
        }})
        bar = BinanceProvider.parse_stream_message(raw)

        assert bar.close == 1.5 and bar.high == 2.0
        assert bar.timestamp.tzinfo is timezone.utc

    @pytest.mark.parametrize("raw", ["not json", json.dumps({"e": "trade"}), json.dumps({"k": {"t": 1}}), json.dumps([1])])
    def test_ignored_stream_messages(self, raw):
        assert BinanceProvider.parse_stream_message(raw) is None


class TestMockProvider:
    def test_history_is_ordered(self):
        bars = MockProvider(seed=7).get_historical_bars("XRPUSD", "1m", 50)

        assert len(bars) == 50
        assert all(a.timestamp < b.timestamp for a, b in zip(bars, bars[1:]))
        assert all(b.low <= min(b.open, b.close) and b.high >= max(b.open, b.close) for b in bars)

    def test_latest_bar_continues_history(self):
        provider = MockProvider(seed=7)
        bars = provider.get_historical_bars("XRPUSD", "1d", 10)
        latest = provider.get_latest_bar("XRPUSD", "1d")

        assert latest.timestamp >= bars[-1].timestamp
