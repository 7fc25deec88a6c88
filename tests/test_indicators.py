import pytest
from conftest import make_bar, START
from indicators.heikin_ashi import to_heikin_ashi
from indicators.moving_average import ema, sma_smooth, vwap
from indicators.rsi import RSI


class TestRSI:
    """Test cases for the Wilder RSI."""

    def test_insufficient_data(self, bar_factory):
        rsi = RSI(14)
        bars = bar_factory([float(i) for i in range(14)])

        assert rsi.calculate(bars) == [None] * 14
        assert rsi.get_latest(bars) is None

    def test_only_gains_is_100(self):
        values = RSI(14).calculate_values([float(i) for i in range(1, 16)])

        assert values[:14] == [None] * 14
        assert values[14] == 100.0

    def test_balanced_moves_is_50(self):
        closes = [1.0, 2.0] * 7 + [1.0]
        values = RSI(14).calculate_values(closes)

        assert values[-1] == pytest.approx(50.0)

    def test_output_aligned_with_input(self, bar_factory):
        bars = bar_factory([100 + (i % 5) for i in range(40)])
        values = RSI(14).calculate(bars)

        assert len(values) == 40
        assert all(v is not None and 0 <= v <= 100 for v in values[14:])

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            RSI(0)


class TestMovingAverages:
    def test_ema_seeded_with_first_close(self, bar_factory):
        series = ema(bar_factory([10.0, 20.0, 20.0]), 3)

        assert [v for _, v in series] == pytest.approx([10.0, 15.0, 17.5])
        assert series[0][0] == START

    def test_ema_empty(self):
        assert ema([], 9) == []

    def test_vwap_weights_typical_price_by_volume(self):
        bars = [
            make_bar(0, 10.0, high=12.0, low=8.0, volume=1.0),
            make_bar(1, 20.0, high=22.0, low=18.0, volume=3.0),
        ]
        values = [v for _, v in vwap(bars)]

        assert values == pytest.approx([10.0, 17.5])

    def test_vwap_without_volume_uses_typical_price(self):
        bar = make_bar(0, 10.0, high=13.0, low=7.0, volume=0.0)

        assert vwap([bar])[0][1] == pytest.approx(10.0)

    def test_sma_smooth(self):
        series = [(START, 1.0), (START, 2.0), (START, 3.0), (START, 4.0)]

        assert [v for _, v in sma_smooth(series, 3)] == pytest.approx([1.0, 2.0, 2.0, 3.0])
        assert sma_smooth(series, 1) == series


class TestHeikinAshi:
    def test_first_candle(self):
        ha = to_heikin_ashi([make_bar(0, 11.0, open_=10.0, high=12.0, low=9.0)])[0]

        assert ha.close == pytest.approx(10.5)
        assert ha.open == pytest.approx(10.5)
        assert ha.high == 12.0
        assert ha.low == 9.0

    def test_open_uses_previous_ha_candle(self):
        bars = [
            make_bar(0, 11.0, open_=10.0, high=12.0, low=9.0),
            make_bar(1, 13.0, open_=11.0, high=14.0, low=10.0),
        ]
        ha = to_heikin_ashi(bars)

        assert ha[1].open == pytest.approx(10.5)
        assert ha[1].close == pytest.approx(12.0)
        assert ha[1].timestamp == bars[1].timestamp
