import pytest
from datetime import datetime, timezone
from levels.models import FibLevel, RsiOp
from signals.crossing import AlertEvaluator, AlertEvent, RsiSource, format_alert_message, rsi_gate

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def alert_level(price=109.0, op=RsiOp.GTE, threshold=60.0, **fields):
    return FibLevel.create("XRPUSD", 0.618, price=price, alert_enabled=True,
                           rsi_op=op, rsi_threshold=threshold, **fields)


def run(evaluator, levels, closes, rsi=70.0):
    events = []
    for close in closes:
        events.extend(evaluator.evaluate(levels, close, rsi, now=NOW))
    return events


class TestCrossing:
    def test_each_side_change_fires_once(self):
        events = run(AlertEvaluator("XRPUSD", "1m"), [alert_level()], [110, 108, 112])

        assert len(events) == 2
        assert all(e.price == 109.0 for e in events)

    def test_same_side_never_fires(self):
        assert run(AlertEvaluator("XRPUSD", "1m"), [alert_level()], [110, 111, 115, 110]) == []

    def test_repeated_ticks_in_one_bucket_do_not_refire(self):
        evaluator = AlertEvaluator("XRPUSD", "1m")

        assert len(run(evaluator, [alert_level()], [110, 108])) == 1
        assert run(evaluator, [alert_level()], [108.5, 108.2, 108.9]) == []

    def test_first_tick_has_no_previous(self):
        evaluator = AlertEvaluator("XRPUSD", "1m")

        assert evaluator.evaluate([alert_level()], 100.0, 70.0) == []
        assert evaluator.previous_close == 100.0

    def test_primed_close_is_the_reference(self):
        evaluator = AlertEvaluator("XRPUSD", "1m")
        evaluator.prime(110.0)

        assert len(evaluator.evaluate([alert_level()], 108.0, 70.0)) == 1

    def test_missing_rsi_still_advances_previous_close(self):
        evaluator = AlertEvaluator("XRPUSD", "1m")
        evaluator.prime(110.0)

        assert evaluator.evaluate([alert_level()], 108.0, None) == []
        assert evaluator.evaluate([alert_level()], 107.0, 70.0) == []

    def test_reset_forgets_previous_close(self):
        evaluator = AlertEvaluator("XRPUSD", "1m")
        evaluator.prime(110.0)
        evaluator.reset("1h")

        assert evaluator.timeframe == "1h"
        assert evaluator.evaluate([alert_level()], 108.0, 70.0) == []

    def test_ignored_levels(self):
        levels = [
            alert_level(enabled=False),
            alert_level(price=None),
            FibLevel.create("XRPUSD", 0.5, price=109.0),
        ]

        assert run(AlertEvaluator("XRPUSD", "1m"), levels, [110, 108]) == []


class TestRsiGate:
    def test_gte(self):
        assert run(AlertEvaluator("XRPUSD", "1m"), [alert_level()], [110, 108], rsi=55.0) == []
        assert len(run(AlertEvaluator("XRPUSD", "1m"), [alert_level()], [110, 108], rsi=65.0)) == 1

    def test_lte(self):
        assert rsi_gate(RsiOp.LTE, 30.0, 30.0)
        assert not rsi_gate(RsiOp.LTE, 30.1, 30.0)
        assert rsi_gate("<=", 10.0, 30.0)

    def test_invalid_op(self):
        with pytest.raises(ValueError):
            rsi_gate("==", 50.0, 50.0)


class TestAlertEvent:
    def test_message(self):
        assert format_alert_message("XRPUSD", "1m", 0.618, 109.0, 65.0) == \
            "XRPUSD 1m crossed 0.618 at 109.000000 | RSI =65.0"
        assert format_alert_message("XRPUSD", "1d", -1.0, 0.5, 42.25, RsiSource.HEIKIN_ASHI) == \
            "XRPUSD 1d crossed -1 at 0.500000 | RSI (HA)=42.2"

    def test_event_fields(self):
        event = run(AlertEvaluator("XRPUSD", "5m"), [alert_level()], [110, 108], rsi=65.0)[0]

        assert event.timestamp == NOW
        assert event.symbol == "XRPUSD"
        assert event.timeframe == "5m"
        assert event.ratio == 0.618
        assert event.rsi_value == 65.0
        assert event.delivered is None
        assert event.message == "XRPUSD 5m crossed 0.618 at 109.000000 | RSI =65.0"

    def test_dict_round_trip(self):
        event = AlertEvent(NOW, "XRPUSD", "1m", 0.5, 1.25, 61.0, "msg", delivered=True)

        assert AlertEvent.from_dict(event.to_dict()) == event
