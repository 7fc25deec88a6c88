"""Alert signal detection."""
from .crossing import AlertEvaluator, AlertEvent, RsiSource, format_alert_message, rsi_gate

__all__ = ["AlertEvaluator", "AlertEvent", "RsiSource", "format_alert_message", "rsi_gate"]
